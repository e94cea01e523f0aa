from .book import Genre, Book
from .borrowing_transaction import BorrowingTransaction

__all__ = [
    "Genre",
    "Book",
    "BorrowingTransaction",
]
