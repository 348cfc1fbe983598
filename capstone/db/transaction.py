from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from capstone.core.errors import ConflictError


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    One commit for everything done inside the block; any exception rolls the
    whole block back so no partial state is ever persisted.

    A version mismatch detected at flush (another writer got there first)
    surfaces as a retryable ConflictError.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as e:
        db.rollback()
        raise ConflictError(
            "The record was modified by another request; reload and retry."
        ) from e
    except Exception:
        db.rollback()
        raise
