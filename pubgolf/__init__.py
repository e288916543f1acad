"""
Pub Golf Scoreboard - scorecards and a live leaderboard for a pub crawl.

This package provides:
- Per-team scorecards with per-hole drink scores
- Leaderboard ranked by total score (lower is better), reloaded on every change
- Admin penalty and bonus points
- Token-based sign-in with an admin role
- Web pages, a JSON API and a websocket leaderboard feed
"""

from .config import GolfConfig
from .database import DatabaseManager
from .auth import AuthProvider
from .leaderboard import LeaderboardView
from .scorecard import ScorecardView
from .adjustments import AdjustmentDesk
from .registration import TeamRegistry
from .web_handlers import WebHandlers
from .scoreboard import PubGolfSystem

__version__ = "1.0.0"
__author__ = "Pub Golf Contributors"

__all__ = [
    "GolfConfig",
    "DatabaseManager",
    "AuthProvider",
    "LeaderboardView",
    "ScorecardView",
    "AdjustmentDesk",
    "TeamRegistry",
    "WebHandlers",
    "PubGolfSystem",
]
