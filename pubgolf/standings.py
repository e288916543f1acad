"""
Standings aggregation.

Pure functions that turn players, per-hole scores and point adjustments
into player totals, per-hole team subtotals, team totals and a ranked
leaderboard. Lower totals are better.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .models import Player, PointAdjustment, Score, Team

# player_id -> {hole_number: score}
ScoreMap = Mapping[str, Mapping[int, int]]

MEDALS = {0: "🥇", 1: "🥈", 2: "🥉"}

# Widest value an SQLite INTEGER column holds
MAX_ENTRY = 2 ** 63 - 1

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_score(value: Any) -> int:
    """
    Parse a score as typed into the scorecard.

    Reads the leading integer of the input ("3", " 4 ", "2 drinks").
    Anything that does not start with an integer, including the empty
    string, counts as 0.

    @param value: Raw input (string, int or None)
    @return: Parsed integer
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value)) if value is not None else None
    if match is None:
        return 0
    return int(match.group(1))


def build_score_map(records: Iterable[Mapping[str, Any]]) -> Dict[str, Dict[int, int]]:
    """
    Organize score rows by player and hole.

    @param records: Rows with player_id, hole_number and score
    @return: Nested dictionary player_id -> hole_number -> score
    """
    scores: Dict[str, Dict[int, int]] = {}
    for record in records:
        entry = Score.from_record(record)
        scores.setdefault(entry.player_id, {})[entry.hole_number] = entry.score
    return scores


def player_total(scores: ScoreMap, player_id: str) -> int:
    """Sum of every hole entered for a player; 0 when nothing is entered."""
    return sum(scores.get(player_id, {}).values())


def hole_team_subtotal(
    players: Iterable[Player],
    scores: ScoreMap,
    hole_number: int,
) -> int:
    """Sum of one hole's entries across a team's players."""
    return sum(scores.get(player.id, {}).get(hole_number, 0) for player in players)


def adjustment_total(adjustments: Iterable[PointAdjustment]) -> int:
    return sum(adjustment.points for adjustment in adjustments)


def team_total(
    players: Iterable[Player],
    scores: ScoreMap,
    adjustments: Iterable[PointAdjustment] = (),
) -> int:
    """
    Authoritative team total used for ranking.

    @param players: The team's players
    @param scores: Score map covering at least those players
    @param adjustments: The team's point adjustments (signed)
    @return: Sum of player totals plus adjustment deltas
    """
    return sum(player_total(scores, player.id) for player in players) + adjustment_total(
        adjustments
    )


def medal_for(position: int) -> str:
    """Medal label for a 0-based leaderboard position; empty past third place."""
    return MEDALS.get(position, "")


@dataclass(frozen=True)
class TeamStanding:
    team_id: str
    team_name: str
    total_score: int
    player_count: int
    score_total: int = 0
    adjustment_total: int = 0
    position: int = 0

    @property
    def medal(self) -> str:
        return medal_for(self.position)

    @property
    def place(self) -> int:
        return self.position + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "team_id": self.team_id,
            "team_name": self.team_name,
            "total_score": self.total_score,
            "score_total": self.score_total,
            "adjustment_total": self.adjustment_total,
            "player_count": self.player_count,
            "position": self.position,
            "place": self.place,
            "medal": self.medal,
        }


def rank_teams(standings: Sequence[TeamStanding]) -> List[TeamStanding]:
    """
    Order standings by total, lowest first.

    The sort is stable, so teams with equal totals keep their input order.

    @param standings: Unranked standings in input order
    @return: New list with positions assigned from 0
    """
    ordered = sorted(standings, key=lambda standing: standing.total_score)
    return [
        TeamStanding(
            team_id=standing.team_id,
            team_name=standing.team_name,
            total_score=standing.total_score,
            player_count=standing.player_count,
            score_total=standing.score_total,
            adjustment_total=standing.adjustment_total,
            position=position,
        )
        for position, standing in enumerate(ordered)
    ]


def compute_standings(
    teams: Sequence[Team],
    players: Iterable[Player],
    scores: ScoreMap,
    adjustments: Iterable[PointAdjustment],
    limit: Optional[int] = None,
) -> List[TeamStanding]:
    """
    Compute the ranked leaderboard from a full snapshot.

    @param teams: Every team, in tie-break order
    @param players: Every player
    @param scores: Score map for every player
    @param adjustments: Every point adjustment
    @param limit: Optional cap on the number of standings returned
    @return: Ranked standings
    """
    players_by_team: Dict[str, List[Player]] = {}
    for player in players:
        players_by_team.setdefault(player.team_id, []).append(player)

    adjustments_by_team: Dict[str, List[PointAdjustment]] = {}
    for adjustment in adjustments:
        adjustments_by_team.setdefault(adjustment.team_id, []).append(adjustment)

    unranked = []
    for team in teams:
        team_players = players_by_team.get(team.id, [])
        team_adjustments = adjustments_by_team.get(team.id, [])
        score_total = team_total(team_players, scores)
        bonus_penalty = adjustment_total(team_adjustments)
        unranked.append(
            TeamStanding(
                team_id=team.id,
                team_name=team.name,
                total_score=score_total + bonus_penalty,
                player_count=len(team_players),
                score_total=score_total,
                adjustment_total=bonus_penalty,
            )
        )

    ranked = rank_teams(unranked)
    if limit is not None:
        ranked = ranked[:limit]
    return ranked
