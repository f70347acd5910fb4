"""Sentry error tracking for the API and the report workers.

No-op unless SENTRY_DSN is configured.
"""

import logging

from app.core.config import settings

logger = logging.getLogger(__name__)


def init_sentry(component: str = "api") -> bool:
    """Initialize Sentry if SENTRY_DSN is configured. Returns True when enabled."""
    if not settings.sentry_dsn:
        logger.debug("Sentry DSN not configured, skipping (%s)", component)
        return False

    import sentry_sdk
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        traces_sample_rate=0.1 if settings.app_env == "production" else 1.0,
        send_default_pii=False,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            CeleryIntegration(),
        ],
    )
    sentry_sdk.set_tag("component", component)
    logger.info("Sentry initialized (env=%s, component=%s)", settings.app_env, component)
    return True
