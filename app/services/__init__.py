"""Services package."""

from .security import security_service
from .export_service import export_service

__all__ = ["security_service", "export_service"]
