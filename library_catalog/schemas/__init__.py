from .book import (
    BookBase, BookCreate, BookUpdate, BookResponse,
    BookDeleteInfo, CoverImage
)
from .borrowing import (
    TransactionResponse, BorrowingResult,
    AvailabilityResponse, HistoryPageResponse
)

__all__ = [
    "BookBase", "BookCreate", "BookUpdate", "BookResponse",
    "BookDeleteInfo", "CoverImage",
    "TransactionResponse", "BorrowingResult",
    "AvailabilityResponse", "HistoryPageResponse",
]
