"""Audit service for security-relevant session events."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinicaflow.models.audit import AuditEvent

logger = logging.getLogger(__name__)


class AuditService:
    """Persist immutable audit trail entries.

    Auditing is best effort: a failed write is logged and rolled back, and
    never changes the outcome of the operation being audited.
    """

    @staticmethod
    def log_event(
        db: Session,
        *,
        user_id: Optional[str],
        action: str,
        ip_address: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditEvent]:
        event = AuditEvent(
            user_id=user_id,
            action=action,
            ip_address=ip_address,
            metadata_json=json.dumps(metadata or {}, ensure_ascii=False),
        )
        try:
            db.add(event)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to write audit event %s for user %s", action, user_id)
            return None
        return event


audit_service = AuditService()
