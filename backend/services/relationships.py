"""Shared scan-and-dedupe helper for two-column user relationship tables."""

from __future__ import annotations

from typing import Any, cast

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


async def collect_counterparty_ids(
    session: AsyncSession,
    *,
    subject_id: str,
    first_column: Any,
    second_column: Any,
    condition: ColumnElement[bool] | None = None,
) -> set[str]:
    """Return the ids on the other end of every edge touching ``subject_id``.

    ``first_column`` and ``second_column`` are the two endpoints of a directed
    edge. Rows where the subject sits in either column are selected (further
    narrowed by ``condition``) and the opposite endpoint of each row is
    collected. Duplicate rows collapse into the returned set.
    """
    query = select(first_column, second_column).where(
        or_(
            _eq(first_column, subject_id),
            _eq(second_column, subject_id),
        )
    )
    if condition is not None:
        query = query.where(condition)

    result = await session.execute(query)
    counterparty_ids: set[str] = set()
    for first_id, second_id in result.all():
        counterparty_ids.add(second_id if first_id == subject_id else first_id)
    counterparty_ids.discard(subject_id)
    return counterparty_ids
