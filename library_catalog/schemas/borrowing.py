from pydantic import BaseModel
from typing import Optional, List
from .book import BookResponse

class TransactionResponse(BaseModel):
    id: int
    bookId: int
    borrowedDate: str
    returnedDate: Optional[str] = None
    isArchived: bool
    book: Optional[BookResponse] = None

class BorrowingResult(BaseModel):
    success: bool
    message: str

class AvailabilityResponse(BaseModel):
    bookId: int
    availableCopies: int

class HistoryPageResponse(BaseModel):
    items: List[TransactionResponse] = []
    pageIndex: int
    pageSize: int
    totalCount: int
    totalPages: int
    hasPreviousPage: bool
    hasNextPage: bool
    currentlyBorrowedCount: Optional[int] = None
