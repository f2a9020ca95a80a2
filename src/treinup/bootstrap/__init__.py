"""Session bootstrap and account provisioning."""

from treinup.bootstrap.coordinator import BootstrapCoordinator
from treinup.bootstrap.guard import SingleFlight
from treinup.bootstrap.provisioner import ProfileProvisioner
from treinup.bootstrap.session_manager import IdentitySessionManager
from treinup.bootstrap.subscription_initializer import SubscriptionInitializer
from treinup.bootstrap.tenant_resolver import TenantResolver

__all__ = [
    "BootstrapCoordinator",
    "IdentitySessionManager",
    "ProfileProvisioner",
    "SingleFlight",
    "SubscriptionInitializer",
    "TenantResolver",
]
