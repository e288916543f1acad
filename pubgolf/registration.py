"""
Team registration: one team per user, players created in a batch.
"""

from typing import Any, Iterable, Optional

from .errors import ValidationError
from .logger import get_logger
from .models import Identity, Player, Team

logger = get_logger(__name__)


class TeamRegistry:
    """Creates teams with their players and looks up a user's team."""

    def __init__(
        self,
        db_manager: Any,
        max_players: int = 10,
        max_name_length: int = 60,
    ) -> None:
        self.db = db_manager
        self.max_players = max_players
        self.max_name_length = max_name_length

    async def find_team(self, user_id: str) -> Optional[Team]:
        """
        Get the team owned by a user.

        @param user_id: Auth identity id
        @return: The user's Team, or None if they have not registered yet
        """
        rows = await self.db.select("teams", filters={"user_id": user_id})
        return Team.from_record(rows[0]) if rows else None

    async def register_team(
        self,
        identity: Identity,
        team_name: str,
        player_names: Iterable[str],
    ) -> Team:
        """
        Create a team and its players.

        Blank player names are dropped; the rest are numbered 1..n in the
        order given.

        @param identity: Signed-in user who will own the team
        @param team_name: Display name for the team
        @param player_names: Player names in playing order
        @return: The created Team
        """
        if team_name is not None and not isinstance(team_name, str):
            raise ValidationError("Team name must be text")
        if isinstance(player_names, (str, bytes)) or not isinstance(player_names, Iterable):
            raise ValidationError("Players must be a list of names")
        player_names = list(player_names)
        if any(name is not None and not isinstance(name, str) for name in player_names):
            raise ValidationError("Player names must be text")

        team_name = (team_name or "").strip()
        names = [name.strip() for name in player_names if name and name.strip()]

        if not team_name:
            raise ValidationError("Indtast et holdnavn")
        if len(team_name) > self.max_name_length:
            raise ValidationError(
                f"Team name too long (max {self.max_name_length} characters)"
            )
        if not names:
            raise ValidationError("Tilføj mindst én spiller")
        if len(names) > self.max_players:
            raise ValidationError(f"At most {self.max_players} players per team")

        if await self.find_team(identity.id) is not None:
            raise ValidationError("You already have a team")

        team_row, _ = await self.db.insert_with_children(
            "teams",
            {"name": team_name, "user_id": identity.id},
            "players",
            [
                {"name": name, "player_order": order}
                for order, name in enumerate(names, 1)
            ],
            link_column="team_id",
        )
        team = Team.from_record(team_row)
        logger.info("Registered team %s with %d player(s)", team.name, len(names))
        return team

    async def list_players(self, team_id: str) -> list:
        rows = await self.db.select(
            "players", filters={"team_id": team_id}, order_by=["player_order"]
        )
        return [Player.from_record(row) for row in rows]
