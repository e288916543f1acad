"""
Record types for teams, players, scores and point adjustments.

The store hands back plain dictionaries; these dataclasses are the
in-memory views built from them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Identity:
    """A signed-in user as reported by the auth provider."""

    id: str
    role: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    user_id: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Team":
        return cls(
            id=record["id"],
            name=record["name"],
            user_id=record.get("user_id"),
            created_at=record.get("created_at"),
        )


@dataclass(frozen=True)
class Player:
    id: str
    team_id: str
    name: str
    player_order: int

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Player":
        return cls(
            id=record["id"],
            team_id=record["team_id"],
            name=record["name"],
            player_order=record["player_order"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "team_id": self.team_id,
            "name": self.name,
            "player_order": self.player_order,
        }


@dataclass(frozen=True)
class Score:
    player_id: str
    hole_number: int
    score: int

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Score":
        return cls(
            player_id=record["player_id"],
            hole_number=record["hole_number"],
            score=record["score"],
        )


class AdjustmentKind(str, Enum):
    """Penalties raise a team's total, bonuses lower it."""

    PENALTY = "penalty"
    BONUS = "bonus"

    def signed(self, magnitude: int) -> int:
        """
        Apply this kind's sign to a point magnitude.

        @param magnitude: Point count as entered; its own sign is ignored
        @return: Positive delta for penalties, negative delta for bonuses
        """
        if self is AdjustmentKind.BONUS:
            return -abs(magnitude)
        return abs(magnitude)


@dataclass(frozen=True)
class PointAdjustment:
    id: str
    team_id: str
    points: int
    reason: str
    created_at: Optional[str] = None
    created_by: Optional[str] = None
    team_name: Optional[str] = None

    @property
    def kind(self) -> AdjustmentKind:
        return AdjustmentKind.BONUS if self.points < 0 else AdjustmentKind.PENALTY

    @classmethod
    def from_record(
        cls,
        record: Mapping[str, Any],
        team_name: Optional[str] = None,
    ) -> "PointAdjustment":
        return cls(
            id=record["id"],
            team_id=record["team_id"],
            points=record["points"],
            reason=record["reason"],
            created_at=record.get("created_at"),
            created_by=record.get("created_by"),
            team_name=team_name,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "team_id": self.team_id,
            "team_name": self.team_name,
            "points": self.points,
            "kind": self.kind.value,
            "reason": self.reason,
            "created_at": self.created_at,
            "created_by": self.created_by,
        }
