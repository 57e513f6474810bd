"""Service registry and application bootstrap."""

from tableforge.services.bootstrap import Bootstrap, RequestScope
from tableforge.services.registry import ServiceName, ServiceRegistry

__all__ = ["Bootstrap", "RequestScope", "ServiceName", "ServiceRegistry"]
