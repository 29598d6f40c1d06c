"""
Application lifecycle for the GitHub activity relay.

This module wires the components together, connects to Discord, runs the
first polling cycle immediately and keeps polling on a fixed interval until
a termination signal arrives.
"""

import asyncio
import signal
from typing import Any

import structlog
from aiohttp import web

from .config import Settings, load_settings
from .discord_client import DiscordNotifier
from .github_client import GitHubClient
from .polling.orchestrator import PollingOrchestrator
from .polling.rate_limiter import RateLimitGate
from .polling.scheduler import IntervalScheduler
from .state.manager import StateManager, StateManagerFactory

logger = structlog.get_logger(__name__)


class RelayApp:
    """Main application class."""

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the application."""
        self.settings = settings
        self.rate_limit_gate: RateLimitGate | None = None
        self.github_client: GitHubClient | None = None
        self.notifier: DiscordNotifier | None = None
        self.state_manager: StateManager | None = None
        self.polling_orchestrator: PollingOrchestrator | None = None
        self.scheduler: IntervalScheduler | None = None
        self._shutdown_event = asyncio.Event()
        self._stopped = False
        self._web_runner: web.AppRunner | None = None

    async def initialize(self) -> None:
        """
        Initialize all application components.

        Raises:
            ConfigurationError: If required settings are missing
        """
        if self.settings is None:
            self.settings = load_settings()
        settings = self.settings

        logger.info(
            "Initializing activity relay",
            github_username=settings.github_username,
            poll_interval_seconds=settings.poll_interval / 1000,
            event_types=settings.polling_config.event_types,
        )
        if not settings.has_github_token:
            logger.warning("No GITHUB_TOKEN set - rate limited to 60 requests/hour")

        self.rate_limit_gate = RateLimitGate()
        self.github_client = GitHubClient(
            gate=self.rate_limit_gate,
            token=settings.github_token,
            api_url=settings.github_api_url,
            timeout=settings.request_timeout_seconds,
        )
        self.notifier = DiscordNotifier(
            token=settings.discord_token,
            channel_id=settings.channel_id,
            api_url=settings.discord_api_url,
            timeout=settings.request_timeout_seconds,
        )
        self.state_manager = StateManagerFactory.create_state_manager(
            settings.state_file
        )
        self.polling_orchestrator = PollingOrchestrator(
            github_client=self.github_client,
            notifier=self.notifier,
            state_manager=self.state_manager,
            settings=settings,
        )
        self.scheduler = IntervalScheduler(
            self.polling_orchestrator.run_cycle,
            interval_seconds=settings.polling_config.interval_seconds,
            shutdown_timeout=settings.shutdown_timeout_seconds,
        )

    async def start(self) -> None:
        """Connect to Discord, load state and start polling."""
        if not self.settings or not self.notifier or not self.polling_orchestrator:
            raise RuntimeError("Application not initialized")
        assert self.scheduler is not None

        await self.notifier.connect()
        await self.polling_orchestrator.load_state()

        if self.settings.health_port:
            await self._start_web_server(self.settings.health_port)

        logger.info(
            "Polling started",
            github_username=self.settings.github_username,
            interval_seconds=self.scheduler.interval_seconds,
        )
        self.scheduler.start()

    async def run(self) -> None:
        """Run until a shutdown is requested."""
        await self.initialize()
        self.setup_signal_handlers()
        try:
            await self.start()
            await self._shutdown_event.wait()
        finally:
            await self.stop()

    def request_shutdown(self) -> None:
        """Ask the running application to stop."""
        logger.info("Shutting down...")
        self._shutdown_event.set()

    async def stop(self) -> None:
        """Stop polling and close all connections."""
        if self._stopped:
            return
        self._stopped = True

        if self.scheduler:
            try:
                await self.scheduler.stop()
            except Exception as e:
                logger.error("Error stopping scheduler", error=str(e))

        if self.notifier:
            try:
                await self.notifier.close()
            except Exception as e:
                logger.error("Error closing Discord connection", error=str(e))

        if self.github_client:
            try:
                await self.github_client.close()
            except Exception as e:
                logger.error("Error closing GitHub client", error=str(e))

        await self._stop_web_server()

        self._shutdown_event.set()
        logger.info("Activity relay stopped")

    def setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, self.request_shutdown)
            except NotImplementedError:
                # Windows event loops
                signal.signal(signum, lambda *_: self.request_shutdown())

    async def health_check(self) -> dict[str, Any]:
        """
        Perform health check of all components.

        Returns:
            Health check results
        """
        health_data: dict[str, Any] = {"status": "healthy", "components": {}}

        if self.notifier and self.notifier.is_connected:
            health_data["components"]["discord"] = "connected"
        else:
            health_data["components"]["discord"] = "disconnected"
            health_data["status"] = "unhealthy"

        if self.rate_limit_gate:
            health_data["components"]["github"] = self.rate_limit_gate.status()

        if self.state_manager:
            try:
                healthy = await self.state_manager.health_check()
            except Exception as e:
                healthy = False
                logger.warning("State health check failed", error=str(e))
            health_data["components"]["state"] = {
                **self.state_manager.describe(),
                "healthy": healthy,
            }
            if not healthy:
                health_data["status"] = "unhealthy"

        if self.polling_orchestrator:
            health_data["last_event_id"] = (
                self.polling_orchestrator.state.last_seen_id
            )
            health_data["polling"] = self.polling_orchestrator.stats.to_dict()

        if self.scheduler:
            health_data["scheduler"] = {
                "running": self.scheduler.is_running(),
                "triggers": self.scheduler.triggers,
                "skipped_triggers": self.scheduler.skipped_triggers,
            }

        return health_data

    async def _create_web_app(self) -> web.Application:
        """Create the web application for health checks."""
        app = web.Application()

        async def health_handler(request: web.Request) -> web.Response:
            """Health check endpoint."""
            try:
                health_data = await self.health_check()
                status_code = 200 if health_data["status"] == "healthy" else 503
                return web.json_response(health_data, status=status_code)
            except Exception as e:
                logger.error("Health check failed", error=str(e))
                return web.json_response(
                    {"status": "unhealthy", "error": str(e)}, status=503
                )

        app.router.add_get("/health", health_handler)
        return app

    async def _start_web_server(self, port: int) -> None:
        """Start the web server for health checks."""
        self._web_runner = web.AppRunner(await self._create_web_app())
        await self._web_runner.setup()
        site = web.TCPSite(self._web_runner, "0.0.0.0", port)
        await site.start()
        logger.info("Health check server started", port=port)

    async def _stop_web_server(self) -> None:
        """Stop the web server."""
        if self._web_runner:
            await self._web_runner.cleanup()
            self._web_runner = None
            logger.info("Health check server stopped")
