"""Universal logfire setup for the application."""

import logfire
from logging import INFO, basicConfig

from utils.settings import Settings


def configure_logging(settings: Settings) -> None:
    """Configure logfire once at boot. Spans are only exported when a write token is set.

    Standard library loggers (used by the middleware stack) are routed through logfire too.
    """
    logfire.configure(
        token=settings.logfire_write_token,
        service_name="artwork-gallery-api",
        send_to_logfire="if-token-present",
    )
    basicConfig(handlers=[logfire.LogfireLoggingHandler()], level=INFO)


def instrument_libraries(app=None):
    """Instrument common libraries for better observability."""
    logfire.instrument_pymongo()
    logfire.instrument_redis()
    if app is not None:
        logfire.instrument_fastapi(app)
