import logging
from contextlib import contextmanager
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from library_catalog.exceptions import UnexpectedError
from library_catalog.repositories.book_repository import BookRepository
from library_catalog.repositories.transaction_repository import TransactionRepository

logger = logging.getLogger(__name__)


class UnitOfWork:
    """One database session plus the repositories that share it."""

    def __init__(self, db: Session):
        self.db = db
        self.books = BookRepository(db)
        self.transactions = TransactionRepository(db)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

    @contextmanager
    def guard(self, operation: str, **context):
        """Roll back on any failure; storage errors surface as UnexpectedError."""
        try:
            yield self
        except SQLAlchemyError as e:
            self.rollback()
            details = ", ".join(f"{key}={value}" for key, value in context.items())
            logger.exception(f"{operation} failed ({details}): {e}")
            raise UnexpectedError(operation) from e
        except Exception:
            self.rollback()
            raise
