"""
SQL helpers shared by the services.

COUNT results come back as a plain int or as a 1-tuple/Row depending on how
the statement was built. scalar_int() coerces either shape.
"""
from typing import Any, Type

from sqlalchemy import func
from sqlmodel import Session, SQLModel, select


def scalar_int(x: Any) -> int:
    """Convert COUNT/aggregate result to int. Handles int or 1-tuple/Row."""
    try:
        return int(x[0])
    except TypeError:
        return int(x)


def count_where(session: Session, model: Type[SQLModel], *criteria: Any) -> int:
    """SELECT COUNT(*) FROM model WHERE criteria..."""
    stmt = select(func.count()).select_from(model)
    if criteria:
        stmt = stmt.where(*criteria)
    return scalar_int(session.exec(stmt).one())
