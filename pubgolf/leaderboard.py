"""
Leaderboard view: every team's standing, reloaded whenever the store
reports a change.
"""

import asyncio
import inspect
from typing import Any, Callable, List, Optional, Set

from . import standings
from .errors import PubGolfError
from .logger import get_logger
from .models import Player, PointAdjustment, Team
from .standings import TeamStanding

logger = get_logger(__name__)

StandingsListener = Callable[[List[TeamStanding]], Any]


class LeaderboardView:
    """
    Ranked standings across all teams.

    Every trigger (initial load, manual refresh, store change) does a full
    reload of teams, players, scores and adjustments. Reloads run one at a
    time; a change that arrives during a reload queues another full reload
    behind it.
    """

    def __init__(
        self,
        db_manager: Any,
        watch_tables: tuple = ("scores",),
        max_entries: Optional[int] = None,
    ) -> None:
        self.db = db_manager
        self.watch_tables = watch_tables
        self.max_entries = max_entries
        self.standings: List[TeamStanding] = []
        self.loaded = False
        self.reload_count = 0
        self._lock = asyncio.Lock()
        self._subscriptions: list = []
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[StandingsListener] = []

    async def load(self) -> List[TeamStanding]:
        """
        Reload everything from the store and recompute the standings.

        @return: The new ranked standings
        """
        async with self._lock:
            team_rows = await self.db.select("teams", order_by=["created_at", "id"])
            player_rows = await self.db.select("players")
            score_rows = await self.db.select("scores")
            penalty_rows = await self.db.select("penalties")

            self.standings = standings.compute_standings(
                [Team.from_record(row) for row in team_rows],
                [Player.from_record(row) for row in player_rows],
                standings.build_score_map(score_rows),
                [PointAdjustment.from_record(row) for row in penalty_rows],
                limit=self.max_entries,
            )
            self.loaded = True
            self.reload_count += 1

        logger.info("Leaderboard reloaded: %d team(s)", len(self.standings))
        await self._publish()
        return self.standings

    async def refresh(self) -> List[TeamStanding]:
        return await self.load()

    async def start(self) -> None:
        """
        Load the standings and subscribe to change events.
        """
        await self.load()
        for table in self.watch_tables:
            self._subscriptions.append(self.db.subscribe(table, self._on_change))

    def _on_change(self) -> None:
        task = asyncio.ensure_future(self._reload_after_change())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _reload_after_change(self) -> None:
        try:
            await self.load()
        except PubGolfError as e:
            # Keep showing the previous standings
            logger.error("Leaderboard reload failed: %s", e)

    async def wait_idle(self) -> None:
        """Wait until every scheduled reload has finished."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def add_listener(self, listener: StandingsListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StandingsListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def _publish(self) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(self.standings)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Leaderboard listener failed")

    def to_list(self) -> List[dict]:
        return [standing.to_dict() for standing in self.standings]

    async def close(self) -> None:
        """
        Unsubscribe and cancel pending reloads.
        """
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._listeners.clear()
