"""Backend access for TreinUp."""

from treinup.backend.client import SupabaseBackend
from treinup.backend.functions_client import FunctionsClient
from treinup.backend.permissions import Permission, Role, profile_permissions

__all__ = ["FunctionsClient", "Permission", "Role", "SupabaseBackend", "profile_permissions"]
