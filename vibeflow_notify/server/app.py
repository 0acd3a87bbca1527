"""Notification server -- app factory and entry point."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable

import aiohttp
from aiohttp import web

from .. import __version__
from ..config import settings as config_settings
from ..config.settings import Settings, SlackCredentials
from ..errors import ConfigurationError
from ..messaging.dispatcher import SlackDispatcher
from ..messaging.notifier import NotificationService
from ..state.delivery_log import DeliveryLogger, DeliveryLogStore
from ..state.webhook_config import WebhookConfigStore
from ..util.background import BackgroundTasks
from .middleware import QuietAccessLogger, create_auth_middleware
from .routes.delivery_log_routes import DeliveryLogRoutes
from .routes.notify_routes import NotifyRoutes
from .routes.slack_events_routes import SlackEventsRoutes
from .routes.webhook_routes import WebhookRoutes

logger = logging.getLogger(__name__)

_NOISY_LOGGERS = ("slack_sdk", "slack_sdk.web.async_base_client", "slack_sdk.webhook")

# Seconds to wait for in-flight welcome messages at shutdown.
_DRAIN_TIMEOUT = 30.0


async def create_app() -> web.Application:
    factory = AppFactory()
    return await factory.build()


class AppFactory:
    """Wires settings, stores and Slack clients into an aiohttp application.

    Collaborators may be injected for tests; anything left out is built from
    *settings* (the process-wide ``cfg`` by default). When no dispatcher is
    given, one is created on startup around a shared ``ClientSession``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        dispatcher: SlackDispatcher | None = None,
        delivery_store: DeliveryLogStore | None = None,
        webhook_store: WebhookConfigStore | None = None,
    ) -> None:
        self._settings = settings or config_settings.cfg
        self._dispatcher = dispatcher
        self._delivery_store = delivery_store
        self._webhook_store = webhook_store

    async def build(self) -> web.Application:
        settings = self._settings
        settings.ensure_dirs()

        self._credentials = self._load_credentials()
        self._delivery_store = self._delivery_store or DeliveryLogStore(settings.delivery_log_path)
        self._webhook_store = self._webhook_store or WebhookConfigStore(settings.webhook_config_path)
        self._background = BackgroundTasks()
        self._notifier = NotificationService(
            self._dispatcher or SlackDispatcher(timeout=settings.dispatch_timeout),
            DeliveryLogger(self._delivery_store),
            self._webhook_store,
            self._background,
        )

        app = web.Application(middlewares=[create_auth_middleware(settings.notify_api_secret)])
        app["notifier"] = self._notifier
        app["background"] = self._background

        self._register_routes(app)
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)
        return app

    def _load_credentials(self) -> SlackCredentials | None:
        try:
            return self._settings.slack_credentials()
        except ConfigurationError as exc:
            logger.error("[startup] %s -- Slack events will be rejected", exc)
            return None

    def _register_routes(self, app: web.Application) -> None:
        router = app.router
        SlackEventsRoutes(self._credentials, self._notifier).register(router)
        NotifyRoutes(self._notifier).register(router)
        WebhookRoutes(self._webhook_store).register(router)
        DeliveryLogRoutes(self._delivery_store).register(router)
        router.add_get("/health", self._health_handler())

    @staticmethod
    def _health_handler() -> Callable:
        async def handler(_req: web.Request) -> web.Response:
            return web.json_response({"status": "ok", "version": __version__})

        return handler

    async def _on_startup(self, app: web.Application) -> None:
        if self._dispatcher is None:
            timeout = self._settings.dispatch_timeout
            session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout))
            app["http_session"] = session
            self._notifier.dispatcher = SlackDispatcher(
                self._credentials.bot_token if self._credentials else "",
                timeout=timeout,
                session=session,
            )
        logger.info(
            "[startup] slack_configured=%s webhooks=%d delivery_log=%s",
            self._credentials is not None,
            sum(1 for t in self._webhook_store.list_targets() if t.is_enabled),
            self._delivery_store.path,
        )

    async def _on_cleanup(self, app: web.Application) -> None:
        await self._background.drain(timeout=_DRAIN_TIMEOUT)
        session = app.get("http_session")
        if session is not None:
            await session.close()


def _quiet_noisy_loggers() -> None:
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def main() -> None:
    parser = argparse.ArgumentParser(description="Vibe Flow Slack notification server")
    parser.add_argument("--host", default="0.0.0.0", help="Interface to bind (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port (default: NOTIFY_PORT or 8000)")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(name)s  %(levelname)s  %(message)s",
    )
    _quiet_noisy_loggers()

    cfg = config_settings.cfg
    cfg.reload()
    port = args.port or cfg.port
    for key, value in cfg.describe().items():
        logger.info("[startup.config] %s=%s", key, value)
    logger.info("Starting notification server on %s:%d ...", args.host, port)

    web.run_app(create_app(), host=args.host, port=port, access_log_class=QuietAccessLogger)


if __name__ == "__main__":
    main()
