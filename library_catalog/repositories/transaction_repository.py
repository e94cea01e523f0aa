from typing import List, Optional
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from library_catalog.models.borrowing_transaction import BorrowingTransaction


class TransactionRepository:
    def __init__(self, db: Session):
        self.db = db

    def _open(self):
        return self.db.query(BorrowingTransaction).filter(
            BorrowingTransaction.returned_date.is_(None),
            BorrowingTransaction.is_archived.is_(False),
        )

    def _newest_first(self, query):
        return query.order_by(
            BorrowingTransaction.borrowed_date.desc(),
            BorrowingTransaction.transaction_id.desc(),
        )

    def get_by_id(self, transaction_id: int) -> Optional[BorrowingTransaction]:
        return self.db.query(BorrowingTransaction).filter(
            BorrowingTransaction.transaction_id == transaction_id
        ).first()

    def add(self, transaction: BorrowingTransaction) -> BorrowingTransaction:
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def update(self, transaction: BorrowingTransaction) -> BorrowingTransaction:
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def count_open(self, book_id: int) -> int:
        """Number of open, non-archived loans for a book."""
        return (
            self.db.query(func.count(BorrowingTransaction.transaction_id))
            .filter(
                BorrowingTransaction.book_id == book_id,
                BorrowingTransaction.returned_date.is_(None),
                BorrowingTransaction.is_archived.is_(False),
            )
            .scalar()
        ) or 0

    def latest_open(self, book_id: int) -> Optional[BorrowingTransaction]:
        query = self._open().filter(BorrowingTransaction.book_id == book_id)
        return self._newest_first(query).first()

    def list_open(self) -> List[BorrowingTransaction]:
        query = self._open().options(joinedload(BorrowingTransaction.book))
        return self._newest_first(query).all()

    def list_active(self) -> List[BorrowingTransaction]:
        """All non-archived transactions with their book, newest first."""
        query = self.db.query(BorrowingTransaction).options(
            joinedload(BorrowingTransaction.book)
        ).filter(BorrowingTransaction.is_archived.is_(False))
        return self._newest_first(query).all()

    def list_by_book(self, book_id: int) -> List[BorrowingTransaction]:
        query = self.db.query(BorrowingTransaction).options(
            joinedload(BorrowingTransaction.book)
        ).filter(
            BorrowingTransaction.book_id == book_id,
            BorrowingTransaction.is_archived.is_(False),
        )
        return self._newest_first(query).all()

    def list_archived(self) -> List[BorrowingTransaction]:
        query = self.db.query(BorrowingTransaction).options(
            joinedload(BorrowingTransaction.book)
        ).filter(BorrowingTransaction.is_archived.is_(True))
        return self._newest_first(query).all()
