"""
transaction.py

Commit-or-rollback wrapper used by the routers.

    with transaction(db):
        membership.join_class(db, klass, user)

- commits when the block finishes
- rolls back on any exception
- a stale class version (concurrent writer) becomes ConcurrentModification
- a unique-constraint violation becomes Conflict
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from caretoshare.core.errors import ConcurrentModification, Conflict


@contextmanager
def transaction(db: Session, *, conflict_message: str = "Conflicting update, please retry") -> Iterator[Session]:
    try:
        yield db
        db.commit()
    except StaleDataError:
        db.rollback()
        raise ConcurrentModification()
    except IntegrityError:
        db.rollback()
        raise Conflict(conflict_message)
    except Exception:
        db.rollback()
        raise
