"""User schemas"""

from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    """User role enumeration"""
    ADMIN = "admin"
    VIEWER = "visualizador"


class UserResponse(BaseModel):
    """Sanitized user: never carries password or token digests"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    clinic_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str
    tenant_id: str
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls.model_validate(user.to_dict())
