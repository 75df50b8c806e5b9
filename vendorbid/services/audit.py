"""
Audit trail helper.

Adds an AuditLog row to the caller's session and emits the matching
structured log line. The caller owns the transaction: the row is
committed or rolled back together with the change it describes.
"""
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from vendorbid.core.logging import audit_logger
from vendorbid.db.models import AuditLog


def record_action(
    db: Session,
    action: str,
    user_id: Optional[int],
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    details: Optional[dict] = None,
    request: Optional[Request] = None,
) -> AuditLog:
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        ip_address=request.client.host if request is not None and request.client else None,
    )
    db.add(entry)
    audit_logger.log(
        action,
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    return entry
