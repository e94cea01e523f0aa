import logging
from datetime import datetime
from typing import Callable, List, Optional, Union
from pydantic import BaseModel, ValidationError as PydanticValidationError
from library_catalog.exceptions import NotFoundError, ConflictError, ValidationError
from library_catalog.models.book import Book
from library_catalog.repositories.unit_of_work import UnitOfWork
from library_catalog.schemas.book import (
    BookCreate, BookUpdate, BookResponse, BookDeleteInfo, CoverImage
)
from library_catalog.services.borrowing import BorrowingLedger
from library_catalog.services.image_store import ImageStore
from library_catalog.services.locks import BookLockRegistry, book_locks
from library_catalog.utils.timezone import now_local

logger = logging.getLogger(__name__)

# Columns that may be cleared by an update; the rest ignore explicit None
NULLABLE_FIELDS = {"description"}


def _validated(schema, data):
    """Coerce a dict (or another model) into ``schema``, reporting problems as ValidationError."""
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(data or {})
    except PydanticValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError("Invalid book data", errors) from e


class CatalogStore:
    """CRUD over books with soft deletion.

    Questions about loans are delegated to the BorrowingLedger; cover files
    go through the ImageStore.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        images: ImageStore,
        ledger: BorrowingLedger,
        locks: BookLockRegistry = book_locks,
        clock: Callable[[], datetime] = now_local,
    ):
        self.uow = uow
        self.images = images
        self.ledger = ledger
        self.locks = locks
        self.clock = clock

    def list_active(self) -> List[Book]:
        with self.uow.guard("list_active_books"):
            books = self.uow.books.list_active()
        logger.debug(f"list_active returned {len(books)} books")
        return books

    def list_deleted(self) -> List[Book]:
        with self.uow.guard("list_deleted_books"):
            books = self.uow.books.list_deleted()
        logger.debug(f"list_deleted returned {len(books)} deleted books")
        return books

    def get_by_id(self, book_id: int) -> Book:
        with self.uow.guard("get_book", book_id=book_id):
            book = self.uow.books.get_by_id(book_id)
        if book is None:
            logger.warning(f"Book not found with ID: {book_id}")
            raise NotFoundError("Book", book_id)
        return book

    def create(self, book_data: Union[BookCreate, dict], cover_image: Optional[CoverImage]) -> Book:
        if cover_image is None or cover_image.is_empty:
            logger.warning("Book cover image is required")
            raise ValidationError("Book cover image is required.")

        data = _validated(BookCreate, book_data)
        logger.info(f"create called for book: {data.title}")

        image_path = self.images.save(cover_image)
        try:
            with self.uow.guard("create_book", title=data.title):
                book = Book(**data.model_dump(), image_path=image_path, is_deleted=False)
                self.uow.books.add(book)
                self.uow.commit()
        except Exception:
            self.images.delete(image_path)
            raise

        logger.info(f"Book '{data.title}' added with {data.total_copies} copies")
        return book

    def update(
        self,
        book_id: int,
        patch: Union[BookUpdate, dict],
        cover_image: Optional[CoverImage] = None,
    ) -> Book:
        changes = _validated(BookUpdate, patch).model_dump(exclude_unset=True)
        changes = {
            field: value for field, value in changes.items()
            if value is not None or field in NULLABLE_FIELDS
        }
        logger.info(f"update called for book {book_id}: fields={sorted(changes)}")

        new_image = None
        with self.locks.hold(book_id), self.uow.guard("update_book", book_id=book_id):
            book = self.uow.books.get_for_update(book_id)
            if book is None:
                logger.warning(f"Book not found with ID: {book_id}")
                raise NotFoundError("Book", book_id)

            old_image = book.image_path
            if cover_image is not None and not cover_image.is_empty:
                new_image = self.images.save(cover_image)
                book.image_path = new_image
            else:
                logger.debug(f"Keeping existing image for book {book_id}")

            for field, value in changes.items():
                setattr(book, field, value)

            try:
                self.uow.books.update(book)
                self.uow.commit()
            except Exception:
                if new_image:
                    self.images.delete(new_image)
                raise

        if new_image and old_image:
            self.images.delete(old_image)
        logger.info(f"Book {book_id} updated")
        return book

    def delete(self, book_id: int) -> Book:
        """Soft-delete a book that has no copies on loan."""
        logger.info(f"delete called for book {book_id}")
        with self.locks.hold(book_id), self.uow.guard("delete_book", book_id=book_id):
            book = self.uow.books.get_for_update(book_id)
            if book is None:
                logger.warning(f"Book not found with ID: {book_id}")
                raise NotFoundError("Book", book_id)

            if book.is_deleted:
                logger.info(f"Book {book_id} is already deleted")
                self.uow.rollback()
                return book

            borrowed = self.ledger.borrowed_copies_for_books([book_id])[book_id]
            if borrowed > 0:
                logger.warning(
                    f"Cannot delete book '{book.title}' because it has {borrowed} borrowed copies"
                )
                raise ConflictError(book_id, book.title, borrowed)

            book.is_deleted = True
            book.deleted_at = self.clock()
            self.uow.books.update(book)
            title = book.title
            self.uow.commit()

        logger.info(f"Book '{title}' soft deleted")
        return book

    def get_delete_info(self, book_id: int) -> BookDeleteInfo:
        book = self.get_by_id(book_id)
        borrowed = self.ledger.borrowed_copies_for_books([book_id])[book_id]
        info = BookDeleteInfo(
            book=BookResponse.model_validate(book.to_dict()),
            totalCopies=book.total_copies,
            borrowedCopies=borrowed,
            availableCopies=book.total_copies - borrowed,
            canDeleteSafely=borrowed == 0,
            hasBorrowedCopies=borrowed > 0,
        )
        logger.debug(
            f"delete info for '{book.title}': total={info.totalCopies}, "
            f"borrowed={info.borrowedCopies}, available={info.availableCopies}"
        )
        return info
