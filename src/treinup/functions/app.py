"""FastAPI application hosting the provisioning functions."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from treinup import __version__
from treinup.backend.client import SupabaseBackend
from treinup.bootstrap.provisioner import ProfileProvisioner
from treinup.bootstrap.subscription_initializer import SubscriptionInitializer
from treinup.config import Settings, get_settings
from treinup.functions.routes import health_router, router
from treinup.services.subscriptions import SubscriptionService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = app.state.settings
    logger.info(f"Starting TreinUp functions v{__version__}")
    logger.info(f"Serving tenant {settings.default_tenant_id}, team {settings.default_team_id}")
    yield
    logger.info("Shutting down TreinUp functions")


def create_app(
    settings: Settings | None = None,
    backend: SupabaseBackend | None = None,
) -> FastAPI:
    """Create and configure the functions application.

    Args:
        settings: Settings to use (defaults to the environment)
        backend: Backend to use (defaults to a service-role Supabase client)
    """
    settings = settings or get_settings()
    if backend is None:
        backend = SupabaseBackend.from_settings(settings, service_role=True)
    backend.pin_tenant(settings.default_tenant_id)

    app = FastAPI(
        title="TreinUp Functions",
        description="Privileged account provisioning",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    subscriptions = SubscriptionService(
        backend,
        plans_table=settings.plans_table,
        subscriptions_table=settings.subscriptions_table,
    )
    app.state.settings = settings
    app.state.backend = backend
    app.state.provisioner = ProfileProvisioner(
        backend,
        team_id=settings.default_team_id,
        profiles_table=settings.profiles_table,
    )
    app.state.initializer = SubscriptionInitializer(backend, subscriptions)

    app.include_router(router)
    app.include_router(health_router)
    return app
