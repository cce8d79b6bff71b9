"""Plain-text HTTP liveness endpoint for container platforms."""

from __future__ import annotations

import logging

from aiohttp import web

from discord_stream_player.config.settings import HealthSettings
from discord_stream_player.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

HEALTH_BODY = "ok"
ROOT_BODY = "discord bot running"


class HealthServer:
    """Answers ``/health`` with ``ok`` and every other path with a banner."""

    def __init__(self, settings: HealthSettings | None = None) -> None:
        self._settings = settings or HealthSettings()
        self.app = web.Application()
        self.setup_routes()
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    @property
    def is_running(self) -> bool:
        return self._site is not None

    def setup_routes(self) -> None:
        self.app.router.add_get("/health", self.handle_health)
        self.app.router.add_route("*", "/{tail:.*}", self.handle_root)

    async def handle_health(self, request: web.Request) -> web.Response:
        return web.Response(text=HEALTH_BODY)

    async def handle_root(self, request: web.Request) -> web.Response:
        return web.Response(text=ROOT_BODY)

    async def start(self) -> None:
        if self._site is not None:
            return

        runner = web.AppRunner(self.app)
        await runner.setup()
        site = web.TCPSite(runner, self._settings.host, self._settings.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise

        self._runner = runner
        self._site = site
        logger.info(LogTemplates.HEALTH_SERVER_STARTED, self._settings.host, self._settings.port)

    async def stop(self) -> None:
        site, self._site = self._site, None
        runner, self._runner = self._runner, None
        if site is not None:
            await site.stop()
        if runner is not None:
            await runner.cleanup()
            logger.info(LogTemplates.HEALTH_SERVER_STOPPED)
