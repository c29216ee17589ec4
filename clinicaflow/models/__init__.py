"""Database models"""

from clinicaflow.models.user import User
from clinicaflow.models.audit import AuditEvent

__all__ = ["User", "AuditEvent"]
