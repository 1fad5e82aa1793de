"""
Waitlist Storage

Persists signup records. Inserts report their outcome as a tagged result
instead of raising, so callers never need to inspect driver errors:

- Inserted: the record was created
- DuplicateEmail: the email is already on the waitlist
- StorageFailure: anything else went wrong
"""

import logging
from dataclasses import dataclass
from typing import Union

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from models.waitlist_entry import WaitlistEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Inserted:
    id: int
    name: str
    email: str


@dataclass(frozen=True)
class DuplicateEmail:
    email: str


@dataclass(frozen=True)
class StorageFailure:
    detail: str


InsertResult = Union[Inserted, DuplicateEmail, StorageFailure]


class WaitlistStore:
    """SQLAlchemy-backed store for waitlist entries"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def add(self, name: str, email: str) -> InsertResult:
        """
        Insert a waitlist entry

        The email unique constraint decides duplicates; there is no
        read-before-write, so two concurrent inserts cannot both succeed.
        """
        db = self.session_factory()
        try:
            entry = WaitlistEntry(name=name, email=email)
            db.add(entry)
            db.commit()
            db.refresh(entry)
            return Inserted(id=entry.id, name=entry.name, email=entry.email)
        except IntegrityError as e:
            db.rollback()
            logger.debug(f"Unique constraint rejected {email}: {e.orig}")
            return DuplicateEmail(email=email)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to store waitlist entry for {email}: {e}")
            return StorageFailure(detail=str(e))
        finally:
            db.close()

    def count_by_email(self, email: str) -> int:
        with self.session_factory() as db:
            return db.scalar(
                select(func.count()).select_from(WaitlistEntry).where(WaitlistEntry.email == email)
            )

    def close(self):
        """Release pooled database connections"""
        engine = self.session_factory.kw.get("bind")
        if engine is not None:
            engine.dispose()
