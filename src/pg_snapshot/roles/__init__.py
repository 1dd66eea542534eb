"""Role, membership, grant, and ownership reconstruction.

Usage:
    from pg_snapshot.roles import RoleSerializer, Role, Grant
"""

from pg_snapshot.roles.models import Grant, OwnedObject, Role
from pg_snapshot.roles.serializer import RoleSerializer

__all__ = [
    "Grant",
    "OwnedObject",
    "Role",
    "RoleSerializer",
]
