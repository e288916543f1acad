"""
Main PubGolfSystem class that orchestrates all components.
"""

import asyncio
from typing import Optional
from aiohttp import web, web_runner
import aiohttp_cors

from .auth import AuthProvider
from .config import GolfConfig
from .database import DatabaseManager
from .leaderboard import LeaderboardView
from .logger import get_logger
from .web_handlers import WebHandlers

logger = get_logger(__name__)


class PubGolfSystem:
    """Async pub golf scoreboard with a web interface and live leaderboard."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        web_port: int = 8081,
        db_path: str = "pubgolf.db",
        config_path: str = "pubgolf_config.json",
        config: Optional[GolfConfig] = None,
    ) -> None:
        self.host = host
        self.web_port = web_port
        self.db_path = db_path

        # Load configuration
        self.config = config if config is not None else GolfConfig(config_path)
        # Initialize components
        self.db = DatabaseManager(db_path)
        self.auth = AuthProvider(self.config.get("auth", "users"))
        self.leaderboard = LeaderboardView(
            self.db,
            watch_tables=self.config.watched_tables(),
            max_entries=self.config.get("leaderboard", "max_entries"),
        )
        self.web_handlers = WebHandlers(self.db, self.config, self.auth, self.leaderboard)

    async def init_db(self) -> None:
        """
        Initialize the database.

        Creates database tables and performs any necessary setup.
        """
        await self.db.init_db()

    async def _start_leaderboard(self, _: web.Application) -> None:
        await self.leaderboard.start()

    async def _stop_leaderboard(self, _: web.Application) -> None:
        await self.leaderboard.close()

    def build_app(self) -> web.Application:
        """
        Build the aiohttp application with all routes registered.

        The leaderboard loads and subscribes to store changes on startup and
        unsubscribes on cleanup.

        @return: Configured web.Application
        """
        app = web.Application()
        handlers = self.web_handlers

        # Setup CORS
        cors = aiohttp_cors.setup(
            app,
            defaults={
                "*": aiohttp_cors.ResourceOptions(
                    allow_credentials=True,
                    expose_headers="*",
                    allow_headers="*",
                    allow_methods="*",
                )
            },
        )

        # Web routes
        app.router.add_get("/", handlers.web_index)
        app.router.add_post("/team", handlers.web_register)
        app.router.add_post("/scores", handlers.web_score)
        app.router.add_get("/rules", handlers.web_rules)
        app.router.add_get("/leaderboard", handlers.web_leaderboard)
        app.router.add_get("/admin/penalties", handlers.web_penalties)
        app.router.add_post("/admin/penalties", handlers.web_penalties)
        app.router.add_post("/auth/signout", handlers.web_signout)

        # API routes
        app.router.add_get("/api/course", handlers.web_api_course)
        app.router.add_post("/api/team", handlers.web_api_register)
        app.router.add_get("/api/scorecard", handlers.web_api_scorecard)
        app.router.add_post("/api/scores", handlers.web_api_score)
        app.router.add_get("/api/leaderboard", handlers.web_api_leaderboard)
        app.router.add_post(
            "/api/leaderboard/refresh", handlers.web_api_leaderboard_refresh
        )
        app.router.add_get("/api/penalties", handlers.web_api_penalties)
        app.router.add_post("/api/penalties", handlers.web_api_penalties)

        # Add CORS to all plain HTTP routes
        for route in list(app.router.routes()):
            cors.add(route)

        # Conditionally add the live leaderboard feed
        if self.config.is_feature_enabled("live_updates"):
            app.router.add_get("/ws/leaderboard", handlers.web_ws_leaderboard)

        app.on_startup.append(self._start_leaderboard)
        app.on_cleanup.append(self._stop_leaderboard)
        return app

    async def start_web_server(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ) -> web_runner.AppRunner:
        """
        Start the web server.

        @param host: Host address to bind the server to (default uses configured host)
        @param port: Port number to use (default uses configured web_port)
        @return: AppRunner instance for the web server
        """
        if host is None:
            host = self.host
        if port is None:
            port = self.web_port

        app_runner = web_runner.AppRunner(self.build_app())
        await app_runner.setup()

        site = web_runner.TCPSite(app_runner, host, port)
        await site.start()

        logger.info("Web server running on http://%s:%s", host, port)
        return app_runner

    async def run(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ) -> None:
        """
        Run the web server until cancelled.

        @param host: Web server host address (default uses configured host)
        @param port: Web server port (default uses configured web_port)
        """
        runner = await self.start_web_server(host, port)

        logger.info("%s scoreboard running, press Ctrl+C to stop", self.config.get("event_name"))

        try:
            await asyncio.Event().wait()
        finally:
            logger.info("Shutting down web server...")
            await runner.cleanup()

    async def log_summary(self) -> None:
        """
        Log what the store currently holds.

        Delegates to the database manager.
        """
        await self.db.log_summary()
