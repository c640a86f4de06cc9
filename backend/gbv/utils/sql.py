"""
SQL utilities for predicate-guarded writes.

conditional_update() is the compare-and-swap primitive: the UPDATE only
touches rows matching every predicate, and the returned row count tells the
caller whether the predicate held.
"""
from typing import Any, Type

from sqlalchemy import update
from sqlmodel import Session, SQLModel


def conditional_update(session: Session, model: Type[SQLModel], *predicates: Any, **values: Any) -> int:
    """
    UPDATE model SET **values WHERE all predicates; returns affected row count.

    In-session objects are not synchronized; callers refresh (or commit, which
    expires them) before reading the updated rows.
    """
    stmt = (
        update(model)
        .where(*predicates)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = session.exec(stmt)
    return int(result.rowcount or 0)
