"""
Per-team scorecard: score entry and the team's own running totals.
"""

from typing import Any, Dict, List, Optional

from . import standings
from .course import HOLES, get_hole, total_par
from .errors import ValidationError
from .logger import get_logger
from .models import Player, Team

logger = get_logger(__name__)


def parse_hole_number(value: Any) -> int:
    """
    Read a hole number from form or JSON input.

    Whole numbers and their string forms are accepted; fractions,
    booleans and anything else are not.

    @param value: Raw hole number
    @return: The hole number as an int
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid hole: {value}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"Invalid hole: {value}")
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid hole: {value}")


class ScorecardView:
    """
    Holds one team's players and scores in memory.

    Edits are optimistic: the in-memory value changes first and the store
    upsert follows. A failed upsert is raised to the caller but the local
    value is kept until the next load() replaces it with what the store has.
    """

    def __init__(self, db_manager: Any, team: Team) -> None:
        self.db = db_manager
        self.team = team
        self.players: List[Player] = []
        self.scores: Dict[str, Dict[int, int]] = {}
        self.loaded = False

    async def load(self) -> None:
        """
        Load the team's players (in playing order) and their scores.
        """
        player_rows = await self.db.select(
            "players",
            filters={"team_id": self.team.id},
            order_by=["player_order"],
        )
        players = [Player.from_record(row) for row in player_rows]

        score_rows = await self.db.select(
            "scores",
            filters={"player_id": [p.id for p in players]},
        )

        self.players = players
        self.scores = standings.build_score_map(score_rows)
        self.loaded = True

    def get_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    async def record_score(
        self,
        player_id: str,
        hole_number: Any,
        value: Any,
    ) -> int:
        """
        Record a player's score for a hole.

        Unparseable input records as 0. The store write happens after the
        local update; StoreError from the write propagates and the local
        value stays.

        @param player_id: Player on this team
        @param hole_number: Hole number (1-9)
        @param value: Raw score input
        @return: The score that was recorded
        """
        if self.get_player(player_id) is None:
            raise ValidationError(f"Unknown player for {self.team.name}: {player_id}")

        number = parse_hole_number(hole_number)
        if get_hole(number) is None:
            raise ValidationError(f"Invalid hole: {hole_number}")

        score = standings.parse_score(value)
        if score < 0:
            raise ValidationError("Score must be non-negative")
        if score > standings.MAX_ENTRY:
            raise ValidationError("Score is too large")

        self.scores.setdefault(player_id, {})[number] = score

        await self.db.upsert(
            "scores",
            {"player_id": player_id, "hole_number": number, "score": score},
            on_conflict=("player_id", "hole_number"),
        )
        logger.info("Score saved: team=%s player=%s hole=%d score=%d",
                    self.team.name, player_id, number, score)
        return score

    def player_total(self, player_id: str) -> int:
        return standings.player_total(self.scores, player_id)

    def hole_subtotal(self, hole_number: int) -> int:
        return standings.hole_team_subtotal(self.players, self.scores, hole_number)

    def team_total(self) -> int:
        # Hole scores only; adjustments show up on the leaderboard
        return standings.team_total(self.players, self.scores)

    def summary(self) -> Dict[str, Any]:
        """
        Snapshot of the card for templates and the JSON API.

        @return: Dictionary with players, holes, per-hole subtotals and totals
        """
        return {
            "team": {"id": self.team.id, "name": self.team.name},
            "players": [
                {
                    **player.to_dict(),
                    "scores": {
                        str(hole): score
                        for hole, score in sorted(self.scores.get(player.id, {}).items())
                    },
                    "total": self.player_total(player.id),
                }
                for player in self.players
            ],
            "holes": [
                {**hole.to_dict(), "team_score": self.hole_subtotal(hole.number)}
                for hole in HOLES
            ],
            "total_par": total_par(),
            "team_total": self.team_total(),
        }
