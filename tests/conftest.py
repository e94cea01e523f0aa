from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from library_catalog.database import Base, build_engine, get_db
from library_catalog.dependencies import get_image_store
from library_catalog.main import app
from library_catalog.models import Book, BorrowingTransaction, Genre
from library_catalog.repositories.unit_of_work import UnitOfWork
from library_catalog.schemas.book import CoverImage
from library_catalog.services.borrowing import BorrowingLedger
from library_catalog.services.catalog import CatalogStore
from library_catalog.services.image_store import ImageStore
from library_catalog.services.locks import BookLockRegistry


class FakeClock:
    """Deterministic clock; every call moves forward by one minute."""

    def __init__(self, start=datetime(2025, 8, 22, 12, 0, 0), step=timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self):
        value = self.current
        self.current += self.step
        return value


@pytest.fixture
def engine(tmp_path):
    """
    Fresh SQLite file database per test.

    A file (rather than :memory:) lets the concurrency tests open one
    connection per thread against the same data.
    """
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def uow(db_session):
    return UnitOfWork(db_session)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def locks():
    return BookLockRegistry()


@pytest.fixture
def image_root(tmp_path):
    return tmp_path / "static"


@pytest.fixture
def image_store(image_root):
    return ImageStore(root_dir=str(image_root))


@pytest.fixture
def ledger(uow, locks, clock):
    return BorrowingLedger(uow, locks=locks, clock=clock)


@pytest.fixture
def catalog(uow, image_store, ledger, locks, clock):
    return CatalogStore(uow, image_store, ledger, locks=locks, clock=clock)


@pytest.fixture
def cover_image():
    return CoverImage(filename="cover.png", content=b"\x89PNG fake cover bytes", content_type="image/png")


@pytest.fixture
def make_book(db_session):
    """Insert a book directly, bypassing the catalog and image store."""

    def _make(title="Clean Code", author="Robert Martin", total_copies=2, **fields):
        fields.setdefault("genre", Genre.SOFTWARE_ENGINEERING)
        fields.setdefault("image_path", "/images/books/seed.png")
        book = Book(title=title, author=author, total_copies=total_copies, **fields)
        db_session.add(book)
        db_session.commit()
        return book

    return _make


@pytest.fixture
def make_transaction(db_session):
    """Insert a borrowing transaction with explicit dates."""

    def _make(book, borrowed_date, returned_date=None, is_archived=False):
        transaction = BorrowingTransaction(
            book_id=book.book_id,
            borrowed_date=borrowed_date,
            returned_date=returned_date,
            is_archived=is_archived,
        )
        db_session.add(transaction)
        db_session.commit()
        return transaction

    return _make


@pytest.fixture
def client(session_factory, image_store):
    """
    TestClient wired to the per-test database and image root.

    FastAPI's dependency_overrides swap get_db and get_image_store for the
    duration of the test; they are cleared afterwards.
    """

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_store] = lambda: image_store
    yield TestClient(app)
    app.dependency_overrides.clear()
