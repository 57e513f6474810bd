"""Authentication and access control for TableForge."""

from tableforge.auth.acl import AccessControlBuilder
from tableforge.auth.password import PasswordService
from tableforge.auth.provider import AuthProvider
from tableforge.auth.session import MemorySessionStorage, Session, SessionStorage
from tableforge.auth.types import ACTIONS, AclSnapshot, PrivilegeSet

__all__ = [
    "ACTIONS",
    "AccessControlBuilder",
    "AclSnapshot",
    "AuthProvider",
    "MemorySessionStorage",
    "PasswordService",
    "PrivilegeSet",
    "Session",
    "SessionStorage",
]
