# blueprints/core/uow.py
from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import Conflict, ServiceError, TransactionFailure


@contextmanager
def unit_of_work(session: Session, *, conflict: str = "Unique constraint violation",
                 conflict_code: str = "unique_constraint") -> Iterator[Session]:
    """Commit everything done inside the block, or roll all of it back.

    Service errors propagate unchanged; IntegrityError becomes Conflict and any
    other storage error becomes TransactionFailure. Nothing is retried here.
    """
    try:
        yield session
        session.commit()
    except ServiceError:
        session.rollback()
        raise
    except IntegrityError as ex:
        session.rollback()
        raise Conflict(conflict, code=conflict_code) from ex
    except SQLAlchemyError as ex:
        session.rollback()
        raise TransactionFailure(str(getattr(ex, "orig", None) or ex)) from ex
