import logging
from collections import Counter
from typing import Callable, Dict, Iterable, List
from datetime import datetime
from library_catalog.config import settings
from library_catalog.exceptions import ValidationError
from library_catalog.models.borrowing_transaction import BorrowingTransaction
from library_catalog.repositories.unit_of_work import UnitOfWork
from library_catalog.services import history
from library_catalog.services.history import PaginatedList
from library_catalog.services.locks import BookLockRegistry, book_locks
from library_catalog.utils.timezone import now_local

logger = logging.getLogger(__name__)


class BorrowingLedger:
    """Borrow/return workflow and the single authority on open-loan counts.

    Available copies are always derived from the transaction set:
    ``book.total_copies - open non-archived transactions``. The book's
    ``total_copies`` is never modified here.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        locks: BookLockRegistry = book_locks,
        clock: Callable[[], datetime] = now_local,
    ):
        self.uow = uow
        self.locks = locks
        self.clock = clock

    def borrow(self, book_id: int) -> bool:
        """Lend one copy. Returns False if the book is unknown, deleted or fully lent."""
        logger.debug(f"borrow called for book_id={book_id}")
        with self.locks.hold(book_id), self.uow.guard("borrow", book_id=book_id):
            book = self.uow.books.get_for_update(book_id)
            if book is None or book.is_deleted:
                logger.warning(f"Borrow refused: book {book_id} not found")
                self.uow.rollback()
                return False

            borrowed = self.uow.transactions.count_open(book_id)
            available = book.total_copies - borrowed
            if available <= 0:
                logger.warning(
                    f"Borrow refused: no copies of '{book.title}' available "
                    f"(total={book.total_copies}, borrowed={borrowed})"
                )
                self.uow.rollback()
                return False

            transaction = BorrowingTransaction(
                book_id=book_id,
                borrowed_date=self.clock(),
                returned_date=None,
                is_archived=False,
            )
            self.uow.transactions.add(transaction)
            transaction_id = transaction.transaction_id
            self.uow.commit()

        logger.info(f"Book {book_id} borrowed (transaction {transaction_id}, {available - 1} left)")
        return True

    def return_(self, book_id: int) -> bool:
        """Close the most recent open loan of a book. Returns False if there is none."""
        logger.debug(f"return called for book_id={book_id}")
        with self.locks.hold(book_id), self.uow.guard("return", book_id=book_id):
            book = self.uow.books.get_for_update(book_id)
            if book is None:
                logger.warning(f"Return refused: book {book_id} not found")
                self.uow.rollback()
                return False

            transaction = self.uow.transactions.latest_open(book_id)
            if transaction is None:
                logger.warning(f"Return refused: no open loan for book {book_id}")
                self.uow.rollback()
                return False

            transaction.returned_date = self.clock()
            self.uow.transactions.update(transaction)
            transaction_id = transaction.transaction_id
            self.uow.commit()

        logger.info(f"Book {book_id} returned (transaction {transaction_id})")
        return True

    def available_copies(self, book_id: int) -> int:
        with self.uow.guard("available_copies", book_id=book_id):
            book = self.uow.books.get_by_id(book_id)
            if book is None:
                return 0
            return book.total_copies - self.uow.transactions.count_open(book_id)

    def borrowed_copies_for_books(self, book_ids: Iterable[int]) -> Dict[int, int]:
        """Open-loan count for each requested book, from a single fetch of the open set."""
        requested = list(book_ids)
        with self.uow.guard("borrowed_copies_for_books"):
            open_transactions = self.uow.transactions.list_open()
        counts = Counter(t.book_id for t in open_transactions)
        return {book_id: counts.get(book_id, 0) for book_id in requested}

    def has_unreturned(self, book_id: int) -> bool:
        with self.uow.guard("has_unreturned", book_id=book_id):
            return self.uow.transactions.count_open(book_id) > 0

    def history(
        self,
        search_term: str = "",
        status: str = "",
        date_filter: str = "",
    ) -> List[BorrowingTransaction]:
        """Non-archived transactions, newest first, narrowed by the optional filters."""
        with self.uow.guard("history"):
            transactions = self.uow.transactions.list_active()

        today = self.clock().date()
        transactions = history.filter_by_search(transactions, search_term)
        transactions = history.filter_by_status(transactions, status)
        transactions = history.filter_by_date(transactions, date_filter, today)
        return history.sort_newest_first(transactions)

    def history_paginated(
        self,
        page_index: int = 1,
        page_size: int = settings.history_page_size,
        search_term: str = "",
        status: str = "",
        date_filter: str = "",
    ) -> PaginatedList[BorrowingTransaction]:
        if page_size < 1:
            raise ValidationError("page_size must be at least 1")

        transactions = self.history(search_term, status, date_filter)
        page = PaginatedList.create(transactions, page_index, page_size)
        logger.debug(
            f"history page {page_index}/{page.total_pages} "
            f"({len(page.items)} of {page.total_count} transactions)"
        )
        return page

    def book_history(self, book_id: int) -> List[BorrowingTransaction]:
        with self.uow.guard("book_history", book_id=book_id):
            return self.uow.transactions.list_by_book(book_id)

    def unreturned_transactions(self) -> List[BorrowingTransaction]:
        with self.uow.guard("unreturned_transactions"):
            return self.uow.transactions.list_open()

    def archived_transactions(self) -> List[BorrowingTransaction]:
        with self.uow.guard("archived_transactions"):
            return self.uow.transactions.list_archived()

    def archive(self, transaction_id: int) -> bool:
        return self._set_archived(transaction_id, True)

    def unarchive(self, transaction_id: int) -> bool:
        return self._set_archived(transaction_id, False)

    def _set_archived(self, transaction_id: int, archived: bool) -> bool:
        operation = "archive" if archived else "unarchive"
        with self.uow.guard(operation, transaction_id=transaction_id):
            transaction = self.uow.transactions.get_by_id(transaction_id)
            if transaction is None:
                logger.warning(f"{operation} refused: transaction {transaction_id} not found")
                return False

            with self.locks.hold(transaction.book_id):
                transaction.is_archived = archived
                self.uow.transactions.update(transaction)
                self.uow.commit()

        logger.info(f"Transaction {transaction_id} {operation}d")
        return True
