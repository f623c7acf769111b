"""Row-level access to the data store.

Every read and write made by the service layer goes through ``DataAccess`` so
that failures surface uniformly as ``DataError`` and no call can wait forever.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Iterable, Sequence, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.core.exceptions import ConflictError, DataError
from bellwright.core.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DataAccess:
    def __init__(self, session: AsyncSession, *, timeout: float | None = None) -> None:
        self.session = session
        self.timeout = timeout if timeout is not None else settings.data_call_timeout_seconds

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            await self._rollback()
            logger.error("Data call timed out: %s after %ss", operation, self.timeout)
            raise DataError("The data store did not respond in time") from exc
        except IntegrityError as exc:
            await self._rollback()
            logger.warning("Integrity violation during %s: %s", operation, exc.orig)
            raise ConflictError("A conflicting record already exists") from exc
        except SQLAlchemyError as exc:
            await self._rollback()
            logger.exception("Data call failed: %s", operation)
            raise DataError() from exc

    async def _rollback(self) -> None:
        try:
            await self.session.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback failed")

    def stage(self, row: T) -> T:
        """Add *row* to the session; the next committing call persists it."""
        self.session.add(row)
        return row

    async def insert(self, row: T) -> T:
        async def _insert() -> T:
            self.session.add(row)
            await self.session.commit()
            await self.session.refresh(row)
            return row

        return await self._run(f"insert {type(row).__name__}", _insert())

    async def select(
        self,
        model: type[T],
        *criteria: Any,
        order_by: Any | Sequence[Any] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[T]:
        stmt = select(model).where(*criteria)
        if order_by is not None:
            ordering = order_by if isinstance(order_by, (list, tuple)) else (order_by,)
            stmt = stmt.order_by(*ordering)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)

        async def _select() -> list[T]:
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

        return await self._run(f"select {model.__name__}", _select())

    async def distinct_values(self, column: Any, *criteria: Any) -> list[Any]:
        """Distinct values of one mapped column across the matching rows."""
        stmt = select(column).where(*criteria).distinct()

        async def _distinct() -> list[Any]:
            result = await self.session.execute(stmt)
            return list(result.scalars().all())

        return await self._run(f"distinct {column}", _distinct())

    async def select_one(self, model: type[T], *criteria: Any) -> T | None:
        stmt = select(model).where(*criteria)

        async def _select_one() -> T | None:
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

        return await self._run(f"select_one {model.__name__}", _select_one())

    async def update(
        self,
        model: type[T],
        criteria: Iterable[Any],
        patch: dict[str, Any],
        *,
        commit: bool = True,
    ) -> list[T]:
        """Apply ``patch`` to rows matching ``criteria``; returns the rows changed.

        With ``commit=False`` the caller owns the transaction and must call
        ``commit()`` once its own writes are staged.
        """
        stmt = (
            update(model)
            .where(*criteria)
            .values(**patch)
            .returning(model)
            .execution_options(synchronize_session=False)
        )

        async def _update() -> list[T]:
            result = await self.session.execute(stmt)
            rows = list(result.scalars().all())
            if commit:
                await self.session.commit()
            return rows

        return await self._run(f"update {model.__name__}", _update())

    async def count_rows(self, model: type, *criteria: Any) -> int:
        stmt = select(func.count()).select_from(model).where(*criteria)

        async def _count() -> int:
            result = await self.session.execute(stmt)
            return int(result.scalar_one() or 0)

        return await self._run(f"count {model.__name__}", _count())

    async def commit(self) -> None:
        await self._run("commit", self.session.commit())
