"""Provisioning function routes.

Every handler answers ``{ok: true, ...}`` or ``{ok: false, message, code}``
with HTTP 200; no error escapes a handler.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from treinup import __version__
from treinup.backend.functions_client import TENANT_HEADER
from treinup.exceptions import (
    InvalidPayloadError,
    PartialProvisioningError,
    ProfileAlreadyExistsError,
    TenantUnavailableError,
    TreinupError,
)
from treinup.functions.auth import verify_function_key
from treinup.models.provisioning import (
    AttachSubscriptionRequest,
    CreateProfileRequest,
    FunctionResponse,
    JoinTeamRequest,
)
from treinup.models.profile import ProfileRole

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/functions", dependencies=[Depends(verify_function_key)])
health_router = APIRouter()

M = TypeVar("M", bound=BaseModel)


def _respond(response: FunctionResponse) -> JSONResponse:
    return JSONResponse(content=response.model_dump(by_alias=True, exclude_none=True, mode="json"))


def _failure(error: TreinupError) -> FunctionResponse:
    response = FunctionResponse(ok=False, message=error.message, code=error.code)
    if isinstance(error, PartialProvisioningError):
        response.profile_id = error.profile_id
        response.pending_steps = list(error.pending_steps)
    elif isinstance(error, ProfileAlreadyExistsError):
        response.profile_id = error.profile_id
    return response


async def _read_payload(request: Request, model: type[M]) -> M:
    try:
        body = await request.json()
    except ValueError:
        raise InvalidPayloadError(message="Body is not valid JSON") from None
    if not isinstance(body, dict):
        raise InvalidPayloadError(message="Body must be a JSON object")
    try:
        return model.model_validate(body)
    except ValidationError as e:
        fields = [".".join(str(part) for part in err["loc"]) for err in e.errors()]
        raise InvalidPayloadError(message=f"Invalid fields: {', '.join(fields)}") from None


def _check_tenant(request: Request) -> None:
    expected = request.app.state.settings.default_tenant_id
    tenant_id = request.headers.get(TENANT_HEADER)
    if tenant_id and tenant_id != expected:
        raise TenantUnavailableError(f"Tenant {tenant_id} is not served here")


async def _run_function(
    name: str,
    request: Request,
    call: Callable[[], Awaitable[FunctionResponse]],
) -> JSONResponse:
    try:
        _check_tenant(request)
        return _respond(await call())
    except TreinupError as e:
        logger.warning(f"Function {name} failed: {e}")
        return _respond(_failure(e))
    except Exception as e:
        logger.exception(f"Function {name} crashed: {e}")
        return _respond(FunctionResponse(
            ok=False,
            message=f"Unexpected error in {name}",
            code="internal_error",
        ))


@router.post("/create-profile")
async def create_profile(request: Request) -> JSONResponse:
    """Create the caller's profile and team membership."""
    async def call() -> FunctionResponse:
        payload = await _read_payload(request, CreateProfileRequest)
        profile_id = await request.app.state.provisioner.ensure_profile(
            user_id=payload.user_id,
            name=payload.name,
            email=payload.email,
            role=payload.role,
        )
        return FunctionResponse(ok=True, profile_id=profile_id)

    return await _run_function("create-profile", request, call)


@router.post("/join-default-team")
async def join_default_team(request: Request) -> JSONResponse:
    """Add a user to the default team."""
    async def call() -> FunctionResponse:
        payload = await _read_payload(request, JoinTeamRequest)
        await request.app.state.provisioner.grant_membership(
            payload.user_id,
            payload.role or ProfileRole.USER,
        )
        return FunctionResponse(ok=True)

    return await _run_function("join-default-team", request, call)


@router.post("/attach-default-subscription")
async def attach_default_subscription(request: Request) -> JSONResponse:
    """Subscribe a freshly provisioned profile to the default plan."""
    settings = request.app.state.settings

    async def call() -> FunctionResponse:
        payload = await _read_payload(request, AttachSubscriptionRequest)
        subscription_id = await request.app.state.initializer.attach_default_subscription(
            profile_id=payload.profile_id,
            plan_id=payload.plan_id or settings.default_plan_id,
            tenant_id=payload.tenant_id or settings.default_tenant_id,
        )
        return FunctionResponse(ok=True, subscription_id=subscription_id)

    return await _run_function("attach-default-subscription", request, call)


@health_router.get("/health")
async def health(request: Request) -> dict:
    """Report service and backend health."""
    backend_health = await request.app.state.backend.health_check(
        request.app.state.settings.plans_table
    )
    return {
        "status": "ok" if backend_health["healthy"] else "degraded",
        "version": __version__,
        "backend": backend_health,
    }
