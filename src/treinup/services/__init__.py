"""Read-side services for TreinUp."""

from treinup.services.profiles import ProfileService
from treinup.services.subscriptions import SubscriptionService

__all__ = ["ProfileService", "SubscriptionService"]
