"""Shared pytest fixtures for scoreboard tests."""

import asyncio

import pytest

from pubgolf.config import GolfConfig
from pubgolf.database import DatabaseManager

ENV_VARS = (
    "EVENT_NAME",
    "LIVE_UPDATES",
    "ADJUSTMENT_HISTORY",
    "MAX_LEADERBOARD_ENTRIES",
    "WATCH_PENALTIES",
    "MIN_ADJUSTMENT_POINTS",
    "MAX_REASON_LENGTH",
    "MAX_PLAYERS_PER_TEAM",
    "MAX_TEAM_NAME_LENGTH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config(tmp_path):
    return GolfConfig(str(tmp_path / "pubgolf_config.json"))


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(str(tmp_path / "pubgolf.db"))
    asyncio.run(manager.init_db())
    return manager
