"""Audit trail helpers: every state-changing action leaves an audit_logs row."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import AuditLog


@dataclass(frozen=True)
class RequestContext:
    """Caller metadata recorded alongside audit entries and fraud scores."""

    ip_address: str | None = None
    user_agent: str | None = None


def record_audit(
    session: AsyncSession,
    action: str,
    resource_type: str,
    context: RequestContext,
    user_id: uuid.UUID | None = None,
    resource_id: uuid.UUID | None = None,
    old_values: dict | None = None,
    new_values: dict | None = None,
) -> AuditLog:
    """Stage an audit row on the session. The caller owns the commit."""
    entry = AuditLog(
        id=uuid.uuid4(),
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        old_values=old_values,
        new_values=new_values,
        ip_address=context.ip_address,
        user_agent=context.user_agent,
        created_at=datetime.now(UTC),
    )
    session.add(entry)
    return entry
