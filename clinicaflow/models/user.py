"""User model"""

import uuid

from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from clinicaflow.core.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Clinic account holding credentials and session state"""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    clinic_name = Column(String(255), nullable=True)
    avatar_url = Column(String(512), nullable=True)
    role = Column(String(20), default="visualizador", nullable=False, index=True)
    tenant_id = Column(String(36), nullable=True)

    # Session state: only the SHA-256 digests are stored
    refresh_token_hash = Column(String(64), nullable=True)
    reset_token_hash = Column(String(64), nullable=True)
    reset_token_expires = Column(DateTime, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    last_login = Column(DateTime(timezone=True))

    audit_events = relationship("AuditEvent", back_populates="user")

    __table_args__ = (
        Index('idx_users_tenant', 'tenant_id'),
    )

    @property
    def effective_tenant_id(self) -> str:
        """Single-tenant accounts are their own tenant."""
        return self.tenant_id or self.id

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"

    def to_dict(self):
        """Sanitized representation: no password or token digests"""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "clinic_name": self.clinic_name,
            "avatar_url": self.avatar_url,
            "role": self.role,
            "tenant_id": self.effective_tenant_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "last_login": self.last_login.isoformat() if self.last_login else None
        }
