"""
Web route handlers for the pub golf scoreboard.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from aiohttp import web
from jinja2 import Environment, FileSystemLoader, select_autoescape

from .adjustments import AdjustmentDesk
from .course import HOLES, rules_catalogue, total_par
from .errors import (
    ACCESS_DENIED,
    SIGN_IN_REQUIRED,
    Notice,
    PubGolfError,
    StoreError,
    ValidationError,
)
from .logger import get_logger
from .models import Identity, Team
from .registration import TeamRegistry
from .scorecard import ScorecardView, parse_hole_number

logger = get_logger(__name__)

TEMPLATES_PATH = Path(__file__).parent / "templates"


def format_timestamp(timestamp: Optional[str]) -> str:
    """
    Format an ISO timestamp for display.

    @param timestamp: ISO 8601 string from the store
    @return: "YYYY-MM-DD HH:MM", or a best-effort fallback
    """
    try:
        dt = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        return dt.strftime("%Y-%m-%d %H:%M")
    except (ValueError, TypeError, AttributeError):
        return timestamp[:19] if timestamp else "Unknown"


class WebHandlers:
    """Handles web routes and responses."""

    def __init__(
        self,
        db_manager: Any,
        config: Any,
        auth: Any,
        leaderboard: Any,
        templates_path: Path = TEMPLATES_PATH,
    ) -> None:
        self.db = db_manager
        self.config = config
        self.auth = auth
        self.leaderboard = leaderboard
        self.registry = TeamRegistry(
            db_manager,
            max_players=config.get("registration", "max_players_per_team"),
            max_name_length=config.get("registration", "max_team_name_length"),
        )
        # One card per team, kept between requests so optimistic edits stay visible
        self._scorecards: Dict[str, ScorecardView] = {}

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(templates_path)),
            autoescape=select_autoescape(["html"]),
            auto_reload=False,
            cache_size=50,
        )
        self.jinja_env.filters["timestamp"] = format_timestamp

    def _render(
        self,
        template_name: str,
        status: int = 200,
        **context: Any,
    ) -> web.Response:
        template = self.jinja_env.get_template(template_name)
        html = template.render(config=self.config, **context)
        return web.Response(text=html, status=status, content_type="text/html")

    def _notice_page(self, notice: Notice, status: int) -> web.Response:
        return self._render("notice.html", status=status, title=notice.title, notice=notice)

    def _json_notice(self, notice: Notice, status: int, **extra: Any) -> web.Response:
        return web.json_response({"notice": notice.to_dict(), **extra}, status=status)

    def _error_status(self, error: PubGolfError) -> int:
        return 400 if isinstance(error, ValidationError) else 502

    def _require_user(
        self,
        request: web.Request,
        api: bool = False,
    ) -> Tuple[Optional[Identity], Optional[web.Response]]:
        identity = self.auth.get_current_user(request)
        if identity is None:
            if api:
                return None, self._json_notice(SIGN_IN_REQUIRED, 401)
            return None, self._notice_page(SIGN_IN_REQUIRED, 401)
        return identity, None

    def _require_admin(
        self,
        request: web.Request,
        api: bool = False,
    ) -> Tuple[Optional[Identity], Optional[web.Response]]:
        identity, denied = self._require_user(request, api)
        if denied is not None:
            return None, denied
        if not identity.is_admin:
            if api:
                return None, self._json_notice(ACCESS_DENIED, 403)
            return None, self._notice_page(ACCESS_DENIED, 403)
        return identity, None

    async def _scorecard(self, team: Team, reload: bool = False) -> ScorecardView:
        card = self._scorecards.get(team.id)
        if card is None:
            card = ScorecardView(self.db, team)
            self._scorecards[team.id] = card
        if reload or not card.loaded:
            await card.load()
        return card

    async def _own_scorecard(self, identity: Identity, reload: bool = False) -> Optional[ScorecardView]:
        team = await self.registry.find_team(identity.id)
        if team is None:
            return None
        return await self._scorecard(team, reload)

    # HTML pages

    async def web_index(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        Web interface main page.

        Shows the team setup form until the user has a team, then the scorecard.

        @param request: HTTP request object
        @return: HTTP response with rendered setup or scorecard page
        """
        identity, denied = self._require_user(request)
        if denied is not None:
            return denied

        try:
            card = await self._own_scorecard(identity, reload=True)
        except StoreError as e:
            return self._notice_page(Notice.from_error(e), 502)

        if card is None:
            return self._render("setup.html", title="Opret hold", identity=identity)

        return self._render(
            "scorecard.html",
            title=card.team.name,
            identity=identity,
            card=card.summary(),
        )

    async def web_register(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        Team setup form submission.

        @param request: HTTP request with team_name and repeated player fields
        @return: Redirect to the scorecard, or the form again with a notice
        """
        identity, denied = self._require_user(request)
        if denied is not None:
            return denied

        data = await request.post()
        try:
            await self.registry.register_team(
                identity, data.get("team_name", ""), data.getall("player", [])
            )
        except PubGolfError as e:
            return self._render(
                "setup.html",
                status=self._error_status(e),
                title="Opret hold",
                identity=identity,
                notice=Notice.from_error(e),
            )
        raise web.HTTPSeeOther("/")

    async def web_score(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        Scorecard form submission for one player and hole.

        @param request: HTTP request with player_id, hole_number and score
        @return: Redirect back to the scorecard, or the card with a notice
        """
        identity, denied = self._require_user(request)
        if denied is not None:
            return denied

        data = await request.post()
        card = None
        try:
            card = await self._own_scorecard(identity)
            if card is None:
                raise ValidationError("Opret et hold først")
            await card.record_score(
                data.get("player_id", ""), data.get("hole_number"), data.get("score", "")
            )
        except PubGolfError as e:
            if card is None:
                return self._notice_page(Notice.from_error(e), self._error_status(e))
            return self._render(
                "scorecard.html",
                status=self._error_status(e),
                title=card.team.name,
                identity=identity,
                card=card.summary(),
                notice=Notice.from_error(e),
            )
        raise web.HTTPSeeOther("/")

    async def web_rules(
        self,
        _: web.Request,
    ) -> web.Response:
        """
        House rules page.

        @param _: Unused request parameter
        @return: HTTP response with rendered rules page
        """
        return self._render("rules.html", title="Regler", rules=rules_catalogue(), holes=HOLES)

    async def web_leaderboard(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        Leaderboard page (admins only).

        @param request: HTTP request object
        @return: HTTP response with rendered leaderboard or access denied notice
        """
        _, denied = self._require_admin(request)
        if denied is not None:
            return denied

        if not self.leaderboard.loaded:
            try:
                await self.leaderboard.load()
            except StoreError as e:
                return self._notice_page(Notice.from_error(e), 502)

        return self._render(
            "leaderboard.html",
            title="Leaderboard",
            standings=self.leaderboard.standings,
            total_par=total_par(),
        )

    async def web_penalties(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        Penalty and bonus admin page.

        GET shows the form and history; POST records an adjustment.

        @param request: HTTP request object
        @return: HTTP response with rendered admin page or access denied notice
        """
        identity, denied = self._require_admin(request)
        if denied is not None:
            return denied

        desk = self._desk()
        notice = None
        status = 200
        try:
            await desk.load()
            if request.method == "POST":
                data = await request.post()
                await desk.record_adjustment(
                    data.get("team_id", ""),
                    data.get("points", ""),
                    data.get("reason", ""),
                    identity,
                    data.get("kind", "penalty"),
                )
                notice = Notice.success("Strafpoint tilføjet")
        except PubGolfError as e:
            notice = Notice.from_error(e)
            status = self._error_status(e)

        return self._render(
            "penalties.html",
            status=status,
            title="Strafpoint",
            desk=desk,
            notice=notice,
        )

    async def web_signout(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        End the current session.

        @param request: HTTP request object
        @return: JSON response saying whether a session was ended
        """
        signed_out = self.auth.sign_out(request)
        response = web.json_response({"signed_out": signed_out})
        response.del_cookie("session")
        return response

    # JSON API

    def _desk(self) -> AdjustmentDesk:
        return AdjustmentDesk(
            self.db,
            min_points=self.config.get("adjustments", "min_points"),
            max_reason_length=self.config.get("adjustments", "max_reason_length"),
        )

    async def _read_json(self, request: web.Request) -> Dict[str, Any]:
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("Request body must be JSON")
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        return body

    async def web_api_course(
        self,
        _: web.Request,
    ) -> web.Response:
        """
        API endpoint for the course and house rules.

        @param _: Unused request parameter
        @return: JSON response with holes, total par and rules
        """
        return web.json_response(
            {
                "event_name": self.config.get("event_name"),
                "holes": [hole.to_dict() for hole in HOLES],
                "total_par": total_par(),
                "rules": rules_catalogue(),
            }
        )

    async def web_api_register(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        API endpoint for team registration.

        @param request: HTTP request with JSON {"team_name", "players"}
        @return: JSON response with the created team and its players
        """
        identity, denied = self._require_user(request, api=True)
        if denied is not None:
            return denied

        try:
            body = await self._read_json(request)
            team = await self.registry.register_team(
                identity, body.get("team_name", ""), body.get("players") or []
            )
            players = await self.registry.list_players(team.id)
        except PubGolfError as e:
            return self._json_notice(Notice.from_error(e), self._error_status(e))

        return web.json_response(
            {
                "team": {"id": team.id, "name": team.name},
                "players": [player.to_dict() for player in players],
                "notice": Notice.success("Hold og spillere oprettet").to_dict(),
            },
            status=201,
        )

    async def web_api_scorecard(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        API endpoint for the signed-in user's scorecard.

        @param request: HTTP request; ?reload=1 re-reads the store
        @return: JSON response with the scorecard summary
        """
        identity, denied = self._require_user(request, api=True)
        if denied is not None:
            return denied

        reload = request.query.get("reload") in ("1", "true")
        try:
            card = await self._own_scorecard(identity, reload=reload)
        except PubGolfError as e:
            return self._json_notice(Notice.from_error(e), self._error_status(e))

        if card is None:
            return self._json_notice(Notice("No team", "Opret et hold først"), 404)
        return web.json_response(card.summary())

    async def web_api_score(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        API endpoint for entering a score.

        The card is updated before the store write. When the write fails the
        response carries a notice alongside the (unchanged) optimistic totals.

        @param request: HTTP request with JSON {"player_id", "hole_number", "score"}
        @return: JSON response with the recorded score and updated totals
        """
        identity, denied = self._require_user(request, api=True)
        if denied is not None:
            return denied

        try:
            body = await self._read_json(request)
            card = await self._own_scorecard(identity)
        except PubGolfError as e:
            return self._json_notice(Notice.from_error(e), self._error_status(e))

        if card is None:
            return self._json_notice(Notice("No team", "Opret et hold først"), 404)

        player_id = body.get("player_id", "")
        notice = None
        status = 200
        try:
            await card.record_score(player_id, body.get("hole_number"), body.get("score", ""))
        except ValidationError as e:
            return self._json_notice(Notice.from_error(e), 400)
        except StoreError as e:
            notice = Notice.from_error(e)
            status = 502

        hole_number = parse_hole_number(body["hole_number"])
        payload = {
            "player_id": player_id,
            "hole_number": hole_number,
            "score": card.scores[player_id][hole_number],
            "player_total": card.player_total(player_id),
            "hole_total": card.hole_subtotal(hole_number),
            "team_total": card.team_total(),
        }
        if notice is not None:
            payload["notice"] = notice.to_dict()
        return web.json_response(payload, status=status)

    async def web_api_leaderboard(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        API endpoint for the leaderboard (admins only).

        @param request: HTTP request object
        @return: JSON response with ranked standings
        """
        _, denied = self._require_admin(request, api=True)
        if denied is not None:
            return denied

        if not self.leaderboard.loaded:
            try:
                await self.leaderboard.load()
            except PubGolfError as e:
                return self._json_notice(Notice.from_error(e), 502)

        return web.json_response(
            {"standings": self.leaderboard.to_list(), "total_par": total_par()}
        )

    async def web_api_leaderboard_refresh(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        API endpoint for a manual leaderboard reload (admins only).

        @param request: HTTP request object
        @return: JSON response with freshly computed standings
        """
        _, denied = self._require_admin(request, api=True)
        if denied is not None:
            return denied

        try:
            await self.leaderboard.refresh()
        except PubGolfError as e:
            return self._json_notice(Notice.from_error(e), 502)

        return web.json_response(
            {"standings": self.leaderboard.to_list(), "total_par": total_par()}
        )

    async def web_api_penalties(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        API endpoint for adjustment history (GET) and new adjustments (POST).

        @param request: HTTP request; POST takes JSON {"team_id", "points", "reason", "kind"}
        @return: JSON response with history, or the stored adjustment
        """
        identity, denied = self._require_admin(request, api=True)
        if denied is not None:
            return denied

        desk = self._desk()
        try:
            await desk.load()
            if request.method != "POST":
                if not self.config.is_feature_enabled("adjustment_history"):
                    return web.json_response({"teams": desk.summary()["teams"], "history": []})
                return web.json_response(desk.summary())

            body = await self._read_json(request)
            adjustment = await desk.record_adjustment(
                body.get("team_id", ""),
                body.get("points"),
                body.get("reason", ""),
                identity,
                body.get("kind", "penalty"),
            )
        except PubGolfError as e:
            return self._json_notice(Notice.from_error(e), self._error_status(e))

        return web.json_response(
            {
                "adjustment": adjustment.to_dict(),
                "notice": Notice.success("Strafpoint tilføjet").to_dict(),
            },
            status=201,
        )

    async def web_ws_leaderboard(
        self,
        request: web.Request,
    ) -> web.StreamResponse:
        """
        Websocket feed that pushes the standings after every reload.

        @param request: HTTP request to upgrade
        @return: The websocket response once the client disconnects
        """
        _, denied = self._require_admin(request, api=True)
        if denied is not None:
            return denied

        if not self.config.is_feature_enabled("live_updates"):
            return self._json_notice(Notice("Disabled", "Live updates are disabled"), 404)

        ws = web.WebSocketResponse(heartbeat=30)
        await ws.prepare(request)

        queue: asyncio.Queue = asyncio.Queue()

        def listener(standings: list) -> None:
            queue.put_nowait([standing.to_dict() for standing in standings])

        self.leaderboard.add_listener(listener)
        queue.put_nowait(self.leaderboard.to_list())

        async def push() -> None:
            while True:
                standings = await queue.get()
                await ws.send_json({"standings": standings})

        sender = asyncio.ensure_future(push())
        try:
            async for _ in ws:
                # Clients only listen; incoming messages are ignored
                pass
        finally:
            sender.cancel()
            self.leaderboard.remove_listener(listener)

        return ws
