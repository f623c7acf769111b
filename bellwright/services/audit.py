"""Audit trail for state-changing admin actions.

Entries are staged on the caller's session so they commit atomically with
the change they describe, and mirrored to the ``bellwright.audit`` stream.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable

from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.core.logging import get_audit_logger
from bellwright.models.audit_log import AuditLog

if TYPE_CHECKING:
    from bellwright.services.identity import CallerIdentity

audit_logger = get_audit_logger()

# Never copied into audit rows, even encrypted
REDACTED_COLUMNS = frozenset({"hashed_password", "card_number", "cvv", "payment_pin", "code_hash"})
REDACTED = "[redacted]"

_ENCODERS = {
    Decimal: str,
    datetime: datetime.isoformat,
    date: date.isoformat,
}


def serialize_for_audit(value: Any) -> Any:
    return jsonable_encoder(value, custom_encoder=_ENCODERS)


def model_snapshot(row: Any, *, exclude: Iterable[str] = ()) -> dict[str, Any]:
    if row is None:
        return {}
    skipped = set(exclude)
    snapshot = {
        column.name: REDACTED if column.name in REDACTED_COLUMNS else getattr(row, column.name)
        for column in row.__table__.columns
        if column.name not in skipped
    }
    return serialize_for_audit(snapshot)


def field_changes(old: dict[str, Any] | None, new: dict[str, Any] | None) -> dict[str, dict]:
    old, new = old or {}, new or {}
    return {
        key: {"from": old.get(key), "to": new.get(key)}
        for key in sorted(set(old) | set(new))
        if old.get(key) != new.get(key)
    }


def record_audit_log(
    db: AsyncSession,
    caller: "CallerIdentity",
    *,
    action: str,
    resource_type: str,
    resource_id: str,
    old_value: dict[str, Any] | None = None,
    new_value: dict[str, Any] | None = None,
) -> AuditLog:
    """Stage an audit row on ``db``; the caller's commit persists it."""
    before = serialize_for_audit(old_value) if old_value is not None else None
    after = serialize_for_audit(new_value) if new_value is not None else None
    changes = field_changes(before, after) or None
    summary = f"{action}: {', '.join(changes)}" if changes else action

    entry = AuditLog(
        actor_id=caller.id,
        actor_email=caller.email,
        actor_role=caller.role.value,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        old_value=before,
        new_value=after,
        changes=changes,
        summary=summary[:500],
    )
    db.add(entry)
    audit_logger.info(
        summary,
        extra={
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "actor_email": caller.email,
            "actor_role": caller.role.value,
        },
    )
    return entry
