"""
Error Reporting

Sentry wiring. Everything here is a no-op unless SENTRY_DSN is configured.
"""

from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from stripe_sevdesk.config import Settings
from stripe_sevdesk.utils.logging_config import get_logger

logger = get_logger(__name__)


def init_sentry(settings: Settings) -> bool:
    """
    Initialize Sentry error reporting.

    Args:
        settings: Application settings

    Returns:
        True if Sentry was initialized
    """
    if not settings.sentry_dsn:
        logger.info("Sentry DSN not configured, error reporting disabled")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=settings.app_version,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        integrations=[StarletteIntegration(), FastApiIntegration()],
    )
    logger.info("Sentry initialized", extra={"environment": settings.environment})
    return True


def capture_exception(error: BaseException, **context: Any) -> None:
    """Report a handled exception with extra context"""
    if not sentry_enabled():
        return

    with sentry_sdk.new_scope() as scope:
        for key, value in context.items():
            scope.set_extra(key, value)
        sentry_sdk.capture_exception(error)


def sentry_enabled() -> bool:
    return sentry_sdk.is_initialized()
