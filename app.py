#!/usr/bin/env python3
"""
Pub golf scoreboard server.
Teams enter per-hole scores, admins hand out penalty and bonus points,
and the leaderboard reloads live as scores arrive.
"""

import argparse
import asyncio
import os
from pathlib import Path

from pubgolf.logger import get_logger
from pubgolf.scoreboard import PubGolfSystem

logger = get_logger("pubgolf.app")


async def main():
    """Main function with command line interface."""

    parser = argparse.ArgumentParser(
        description="Pub golf scorecard and leaderboard server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--web-port",
        type=int,
        default=int(os.getenv("WEB_PORT", "8081")),
        help="Web interface port (env: WEB_PORT)"
    )
    parser.add_argument(
        "--db",
        default=os.getenv("DB_PATH", "pubgolf.db"),
        help="SQLite database file path (env: DB_PATH)"
    )
    parser.add_argument(
        "--config",
        default=os.getenv("CONFIG_PATH", "pubgolf_config.json"),
        help="Configuration file path (env: CONFIG_PATH)"
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the server to (env: HOST)"
    )

    args = parser.parse_args()

    config_path = Path(args.config)

    if config_path.exists() and not config_path.is_file():
        logger.error("%s exists but is not a file", args.config)
        return

    system = PubGolfSystem(
        host=args.host,
        web_port=args.web_port,
        db_path=args.db,
        config_path=args.config,
    )

    await system.init_db()
    await system.log_summary()

    await system.run()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Server interrupted")
