"""Conditional status transitions shared by every pending-first lifecycle.

A transition is a single ``UPDATE ... WHERE id = :id AND status = 'pending'``.
When it matches nothing the row is re-read to tell the three outcomes apart:
missing, already in the requested state (idempotent) or decided the other way.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, TypeVar

from bellwright.core.exceptions import ConflictError, NotFoundError
from bellwright.db.data_access import DataAccess

logger = logging.getLogger(__name__)

PENDING = "pending"

T = TypeVar("T")


async def transition_from_pending(
    data: DataAccess,
    model: type[T],
    row_id: uuid.UUID,
    target: str,
    patch: dict[str, Any],
    *,
    label: str,
) -> tuple[T, bool]:
    """Move ``row_id`` from pending to ``target``.

    Returns ``(row, changed)``. When ``changed`` is true the update is staged
    but not committed, so the caller can add its audit row to the same
    transaction before calling ``data.commit()``.
    """
    rows = await data.update(
        model,
        [model.id == row_id, model.status == PENDING],
        {"status": target, **patch},
        commit=False,
    )
    if rows:
        return rows[0], True

    current = await data.select_one(model, model.id == row_id)
    if current is None:
        raise NotFoundError(f"{label} not found")
    if current.status == target:
        logger.info("%s %s already %s; nothing to do", label, row_id, target)
        return current, False
    logger.warning(
        "Refused %s transition for %s: %s -> %s", label, row_id, current.status, target
    )
    raise ConflictError(
        f"{label} has already been {current.status}",
        details={"current_status": current.status},
    )
