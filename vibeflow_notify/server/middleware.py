"""HTTP middleware -- bearer auth and access-log filtering."""

from __future__ import annotations

import hmac
import logging
from collections.abc import Awaitable, Callable

from aiohttp import web
from aiohttp.abc import AbstractAccessLogger

logger = logging.getLogger(__name__)

_QUIET_PATHS = frozenset({"/health"})

# Slack authenticates its own requests with a signature, not the bearer secret.
_PUBLIC_PREFIXES = ("/health", "/api/slack/events")

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


class QuietAccessLogger(AbstractAccessLogger):
    """Demotes health probes and rejected requests to DEBUG."""

    def log(self, request: web.BaseRequest, response: web.StreamResponse, time: float) -> None:
        status = response.status
        if request.path in _QUIET_PATHS or status == 401:
            level = logging.DEBUG
        else:
            level = logging.INFO
        self.logger.log(
            level,
            "%s %s %s %s %.3fs",
            request.remote,
            request.method,
            request.path,
            status,
            time,
        )


def is_public_path(path: str) -> bool:
    return any(path.startswith(p) for p in _PUBLIC_PREFIXES)


def create_auth_middleware(secret: str) -> Callable[[web.Request, Handler], Awaitable[web.StreamResponse]]:
    """Require ``Authorization: Bearer <secret>`` on non-public ``/api/*`` routes.

    An empty *secret* disables the check entirely.
    """
    expected = f"Bearer {secret}"

    @web.middleware
    async def auth_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        if not secret:
            return await handler(request)

        path = request.path
        if not path.startswith("/api/") or is_public_path(path):
            return await handler(request)

        auth = request.headers.get("Authorization", "")
        if hmac.compare_digest(auth.encode("utf-8"), expected.encode("utf-8")):
            return await handler(request)

        logger.debug("[auth] rejected %s %s", request.method, path)
        return web.json_response(
            {"status": "unauthorized", "message": "Invalid or missing API secret"},
            status=401,
        )

    return auth_middleware
