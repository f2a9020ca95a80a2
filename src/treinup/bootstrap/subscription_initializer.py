"""Default subscription for newly provisioned profiles."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from treinup.backend.client import SupabaseBackend
from treinup.exceptions import InvalidPayloadError, PlanNotFoundError
from treinup.models.subscription import Subscription
from treinup.services.subscriptions import SubscriptionService

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SubscriptionInitializer:
    """Attaches a plan subscription to a profile."""

    def __init__(
        self,
        backend: SupabaseBackend,
        plans: SubscriptionService,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._backend = backend
        self._plans = plans
        self._clock = clock

    async def attach_default_subscription(
        self,
        profile_id: str | None,
        plan_id: str | None,
        tenant_id: str | None,
    ) -> str:
        """Create a subscription running for the plan's duration from now.

        Returns:
            The new subscription id

        Raises:
            InvalidPayloadError: If an id is missing or the plan has no duration
            PlanNotFoundError: If the plan does not resolve (nothing is written)
        """
        fields = {"profileId": profile_id, "planId": plan_id, "tenantId": tenant_id}
        missing = [field for field, value in fields.items() if not value]
        if missing:
            raise InvalidPayloadError(missing)

        plan = await self._plans.get_plan(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        if plan.duration_days <= 0:
            raise InvalidPayloadError(message=f"Plan {plan_id} has no duration")

        start = self._clock()
        subscription = Subscription(
            profile_id=profile_id,
            plan_id=plan.id,
            tenant_id=tenant_id,
            start_date=start,
            end_date=start + timedelta(days=plan.duration_days),
            stored_active=True,
        )
        doc = await self._backend.create_document(
            self._plans.subscriptions_table,
            subscription.to_document(),
        )
        logger.info(f"Attached plan {plan.id} to profile {profile_id} until {subscription.end_date}")
        return doc["id"]
