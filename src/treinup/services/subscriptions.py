"""Plan and subscription lookups."""

import logging
from datetime import UTC, datetime

from treinup.backend.client import SupabaseBackend
from treinup.models.profile import Profile
from treinup.models.subscription import Plan, Subscription

logger = logging.getLogger(__name__)


class SubscriptionService:
    """Reads plans and subscriptions.

    Whether a subscription is active is always recomputed from its dates;
    the stored ``isActive`` flag is never used for access decisions.
    """

    def __init__(
        self,
        backend: SupabaseBackend,
        plans_table: str = "plans",
        subscriptions_table: str = "subscriptions",
    ) -> None:
        self._backend = backend
        self._plans_table = plans_table
        self._subscriptions_table = subscriptions_table

    @property
    def subscriptions_table(self) -> str:
        return self._subscriptions_table

    async def get_plan(self, plan_id: str) -> Plan | None:
        """Get a plan by id, or None if it does not resolve."""
        if not plan_id or len(plan_id) > 36:
            logger.warning(f"Invalid plan id: {plan_id!r}")
            return None
        doc = await self._backend.get_document(self._plans_table, plan_id)
        if doc is None:
            return None
        return Plan.from_document(doc)

    async def list_plans(self, tenant_id: str) -> list[Plan]:
        """List the plans a tenant offers."""
        docs = await self._backend.list_documents(self._plans_table, {"tenant_id": tenant_id})
        return [Plan.from_document(doc) for doc in docs]

    async def get_active_subscription(
        self,
        profile_id: str,
        now: datetime | None = None,
    ) -> Subscription | None:
        """Get the subscription currently covering a profile.

        When several overlap, the one ending last wins.
        """
        moment = now or datetime.now(UTC)
        docs = await self._backend.list_documents(
            self._subscriptions_table, {"profileId": profile_id}
        )
        active = []
        for doc in docs:
            subscription = Subscription.from_document(doc)
            if subscription.is_active_at(moment):
                active.append(subscription)
            elif subscription.stored_active:
                logger.debug(f"Subscription {subscription.id} is flagged active but expired")
        if not active:
            return None
        return max(active, key=lambda s: s.end_date)

    async def has_active_plan(self, profile: Profile, now: datetime | None = None) -> bool:
        """Whether a profile may use plan-gated features.

        Trainers and owners never need a plan.
        """
        if profile.role.is_staff:
            return True
        if profile.id is None:
            return False
        return await self.get_active_subscription(profile.id, now) is not None
