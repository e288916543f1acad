"""
Admin desk for penalty and bonus points.
"""

from typing import Any, Dict, List, Optional

from .errors import ValidationError
from .logger import get_logger
from .models import AdjustmentKind, Identity, PointAdjustment, Team
from .standings import MAX_ENTRY

logger = get_logger(__name__)


class AdjustmentDesk:
    """Lists teams and adjustment history, and records new adjustments."""

    def __init__(
        self,
        db_manager: Any,
        min_points: int = 1,
        max_reason_length: int = 500,
    ) -> None:
        self.db = db_manager
        self.min_points = min_points
        self.max_reason_length = max_reason_length
        self.teams: List[Team] = []
        self.history: List[PointAdjustment] = []

    async def load(self) -> None:
        await self.load_teams()
        await self.load_history()

    async def load_teams(self) -> List[Team]:
        rows = await self.db.select("teams", order_by=["name"])
        self.teams = [Team.from_record(row) for row in rows]
        return self.teams

    async def load_history(self) -> List[PointAdjustment]:
        """
        Load every adjustment, newest first, with its team name attached.

        @return: Adjustment history
        """
        rows = await self.db.select("penalties", order_by=["-created_at"])
        names = {team.id: team.name for team in self.teams}
        self.history = [
            PointAdjustment.from_record(row, team_name=names.get(row["team_id"]))
            for row in rows
        ]
        return self.history

    def get_team(self, team_id: str) -> Optional[Team]:
        for team in self.teams:
            if team.id == team_id:
                return team
        return None

    def _parse_points(self, points: Any) -> int:
        if isinstance(points, bool):
            raise ValidationError("Points must be a whole number")
        try:
            magnitude = int(str(points).strip())
        except (TypeError, ValueError):
            raise ValidationError("Points must be a whole number")
        if abs(magnitude) < self.min_points:
            raise ValidationError(f"Points must be at least {self.min_points}")
        if abs(magnitude) > MAX_ENTRY:
            raise ValidationError("Points value is too large")
        return magnitude

    async def record_adjustment(
        self,
        team_id: str,
        points: Any,
        reason: str,
        issuer: Identity,
        kind: AdjustmentKind = AdjustmentKind.PENALTY,
    ) -> PointAdjustment:
        """
        Add a penalty or bonus to a team.

        Penalties are stored as a positive delta and bonuses as a negative
        one, whatever sign the magnitude was typed with.

        @param team_id: Team receiving the adjustment
        @param points: Point magnitude as entered
        @param reason: Why the points were given
        @param issuer: Admin identity giving the points
        @param kind: Penalty or bonus
        @return: The stored adjustment
        """
        reason = (reason or "").strip()
        if not team_id or points in (None, "") or not reason:
            raise ValidationError("Udfyld alle felter")

        team = self.get_team(team_id)
        if team is None:
            # The team may have registered after the desk was loaded
            await self.load_teams()
            team = self.get_team(team_id)
        if team is None:
            raise ValidationError(f"Unknown team: {team_id}")

        if len(reason) > self.max_reason_length:
            raise ValidationError(
                f"Reason too long (max {self.max_reason_length} characters)"
            )

        try:
            kind = AdjustmentKind(kind)
        except ValueError:
            raise ValidationError(f"Unknown adjustment kind: {kind}")

        delta = kind.signed(self._parse_points(points))

        row = await self.db.insert(
            "penalties",
            {
                "team_id": team.id,
                "points": delta,
                "reason": reason,
                "created_by": issuer.id,
            },
        )
        logger.info("%s of %+d given to %s by %s: %s",
                    kind.value, delta, team.name, issuer.id, reason)

        await self.load_history()
        return PointAdjustment.from_record(row, team_name=team.name)

    def summary(self) -> Dict[str, Any]:
        return {
            "teams": [{"id": team.id, "name": team.name} for team in self.teams],
            "history": [adjustment.to_dict() for adjustment in self.history],
        }
