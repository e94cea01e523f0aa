import threading
from concurrent.futures import ThreadPoolExecutor

from library_catalog.exceptions import ConflictError
from library_catalog.models import Book, BorrowingTransaction
from library_catalog.repositories.unit_of_work import UnitOfWork
from library_catalog.services.borrowing import BorrowingLedger
from library_catalog.services.catalog import CatalogStore
from library_catalog.services.locks import BookLockRegistry


def run_parallel_borrows(session_factory, locks, book_id, attempts):
    """Start ``attempts`` borrows at once, each on its own session."""
    barrier = threading.Barrier(attempts)

    def attempt():
        db = session_factory()
        try:
            ledger = BorrowingLedger(UnitOfWork(db), locks=locks)
            barrier.wait()
            return ledger.borrow(book_id)
        finally:
            db.close()

    with ThreadPoolExecutor(max_workers=attempts) as pool:
        futures = [pool.submit(attempt) for _ in range(attempts)]
        return [future.result() for future in futures]


def test_single_copy_is_lent_exactly_once(session_factory, make_book, db_session):
    book = make_book(total_copies=1)

    results = run_parallel_borrows(session_factory, BookLockRegistry(), book.book_id, attempts=8)

    assert results.count(True) == 1
    assert results.count(False) == 7
    assert db_session.query(BorrowingTransaction).filter(
        BorrowingTransaction.book_id == book.book_id,
        BorrowingTransaction.returned_date.is_(None),
    ).count() == 1


def test_parallel_borrows_never_exceed_total_copies(session_factory, make_book, db_session):
    book = make_book(total_copies=3)

    results = run_parallel_borrows(session_factory, BookLockRegistry(), book.book_id, attempts=10)

    assert results.count(True) == 3
    assert db_session.query(BorrowingTransaction).count() == 3


def test_lock_registry_forgets_released_books():
    locks = BookLockRegistry()

    with locks.hold(1):
        with locks.hold(2):
            assert len(locks) == 2
        assert len(locks) == 1

    assert len(locks) == 0


def test_lock_registry_serializes_same_book():
    locks = BookLockRegistry()
    inside = []
    overlaps = []

    def critical_section():
        with locks.hold(7):
            if inside:
                overlaps.append(True)
            inside.append(True)
            threading.Event().wait(0.01)
            inside.pop()

    threads = [threading.Thread(target=critical_section) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert overlaps == []


def test_delete_and_borrow_race_keeps_book_consistent(session_factory, make_book, image_store, db_session):
    """A deleted book must never be left with an open loan, whichever call wins."""
    locks = BookLockRegistry()

    for _ in range(5):
        book = make_book(total_copies=1)
        barrier = threading.Barrier(2)

        def borrow():
            db = session_factory()
            try:
                ledger = BorrowingLedger(UnitOfWork(db), locks=locks)
                barrier.wait()
                return ledger.borrow(book.book_id)
            finally:
                db.close()

        def delete():
            db = session_factory()
            try:
                uow = UnitOfWork(db)
                catalog = CatalogStore(uow, image_store, BorrowingLedger(uow, locks=locks), locks=locks)
                barrier.wait()
                try:
                    catalog.delete(book.book_id)
                    return True
                except ConflictError:
                    return False
            finally:
                db.close()

        with ThreadPoolExecutor(max_workers=2) as pool:
            borrowed = pool.submit(borrow)
            deleted = pool.submit(delete)
            borrowed, deleted = borrowed.result(), deleted.result()

        db_session.expire_all()
        stored = db_session.get(Book, book.book_id)
        open_loans = db_session.query(BorrowingTransaction).filter(
            BorrowingTransaction.book_id == book.book_id,
            BorrowingTransaction.returned_date.is_(None),
            BorrowingTransaction.is_archived.is_(False),
        ).count()

        assert borrowed != deleted
        assert stored.is_deleted is deleted
        assert open_loans == (1 if borrowed else 0)
        assert not (stored.is_deleted and open_loans)

    assert len(locks) == 0
