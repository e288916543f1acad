"""
Error types and user-facing notices for the pub golf scoreboard.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict


class PubGolfError(Exception):
    """Base class for all scoreboard errors."""

    title = "Error"


class ValidationError(PubGolfError):
    """Input rejected before any store call was made."""


class StoreError(PubGolfError):
    """A read or write against the backend store failed."""


@dataclass(frozen=True)
class Notice:
    """Transient message shown to the user after an action."""

    title: str
    description: str
    variant: str = "default"

    @classmethod
    def success(cls, description: str) -> "Notice":
        return cls("Success!", description)

    @classmethod
    def from_error(cls, error: Exception) -> "Notice":
        title = getattr(error, "title", "Error")
        return cls(title, str(error), "destructive")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


ACCESS_DENIED = Notice(
    "Access denied",
    "Du har ikke adgang til denne side. Kun administratorer har adgang.",
    "destructive",
)

SIGN_IN_REQUIRED = Notice(
    "Sign in required",
    "Log ind for at fortsætte.",
    "destructive",
)
