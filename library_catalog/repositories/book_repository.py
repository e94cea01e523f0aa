from typing import List, Optional
from sqlalchemy.orm import Session
from library_catalog.models.book import Book


class BookRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, book_id: int) -> Optional[Book]:
        return self.db.query(Book).filter(Book.book_id == book_id).first()

    def get_for_update(self, book_id: int) -> Optional[Book]:
        """Load the book with a row lock held until the transaction ends."""
        return (
            self.db.query(Book)
            .filter(Book.book_id == book_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def add(self, book: Book) -> Book:
        self.db.add(book)
        self.db.flush()
        return book

    def update(self, book: Book) -> Book:
        self.db.add(book)
        self.db.flush()
        return book

    def list_active(self) -> List[Book]:
        return (
            self.db.query(Book)
            .filter(Book.is_deleted.is_(False))
            .order_by(Book.title, Book.book_id)
            .all()
        )

    def list_deleted(self) -> List[Book]:
        return (
            self.db.query(Book)
            .filter(Book.is_deleted.is_(True))
            .order_by(Book.deleted_at.desc(), Book.book_id.desc())
            .all()
        )
