from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from library_catalog.config import settings
from library_catalog.dependencies import get_ledger
from library_catalog.exceptions import NotFoundError
from library_catalog.schemas.borrowing import (
    TransactionResponse, BorrowingResult,
    AvailabilityResponse, HistoryPageResponse
)
from library_catalog.services.borrowing import BorrowingLedger

router = APIRouter(prefix="/api/borrowing", tags=["Borrowing"])


def _transactions(transactions) -> List[TransactionResponse]:
    return [TransactionResponse(**t.to_dict()) for t in transactions]


@router.post("/books/{book_id}/borrow", response_model=BorrowingResult)
def borrow_book(book_id: int, ledger: BorrowingLedger = Depends(get_ledger)):
    success = ledger.borrow(book_id)
    return BorrowingResult(
        success=success,
        message="Book borrowed successfully!" if success else "No copies available.",
    )

@router.post("/books/{book_id}/return", response_model=BorrowingResult)
def return_book(book_id: int, ledger: BorrowingLedger = Depends(get_ledger)):
    success = ledger.return_(book_id)
    return BorrowingResult(
        success=success,
        message="Book returned successfully!" if success else "No borrowed copies to return.",
    )

@router.get("/books/{book_id}/available", response_model=AvailabilityResponse)
def get_available_copies(book_id: int, ledger: BorrowingLedger = Depends(get_ledger)):
    return AvailabilityResponse(bookId=book_id, availableCopies=ledger.available_copies(book_id))

@router.get("/books/{book_id}/unreturned")
def check_unreturned(book_id: int, ledger: BorrowingLedger = Depends(get_ledger)):
    return {"bookId": book_id, "hasUnreturned": ledger.has_unreturned(book_id)}

@router.get("/books/{book_id}/history", response_model=List[TransactionResponse])
def get_book_history(book_id: int, ledger: BorrowingLedger = Depends(get_ledger)):
    return _transactions(ledger.book_history(book_id))

@router.get("/history", response_model=HistoryPageResponse)
def get_history(
    page: int = 1,
    page_size: int = settings.history_http_page_size,
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    date_filter: Optional[str] = None,
    ledger: BorrowingLedger = Depends(get_ledger),
):
    """Paginated borrowing history with search, status and date filters."""
    if page < 1:
        page = 1
    if page_size < 1 or page_size > settings.history_max_page_size:
        page_size = settings.history_http_page_size
    
    history = ledger.history_paginated(
        page_index=page,
        page_size=page_size,
        search_term=search or "",
        status=status_filter or "",
        date_filter=date_filter or "",
    )
    return HistoryPageResponse(
        items=_transactions(history.items),
        pageIndex=history.page_index,
        pageSize=history.page_size,
        totalCount=history.total_count,
        totalPages=history.total_pages,
        hasPreviousPage=history.has_previous_page,
        hasNextPage=history.has_next_page,
        currentlyBorrowedCount=len(ledger.unreturned_transactions()),
    )

@router.get("/unreturned", response_model=List[TransactionResponse])
def get_unreturned(ledger: BorrowingLedger = Depends(get_ledger)):
    return _transactions(ledger.unreturned_transactions())

@router.get("/archived", response_model=List[TransactionResponse])
def get_archived(ledger: BorrowingLedger = Depends(get_ledger)):
    return _transactions(ledger.archived_transactions())

@router.post("/transactions/{transaction_id}/archive", response_model=BorrowingResult)
def archive_transaction(transaction_id: int, ledger: BorrowingLedger = Depends(get_ledger)):
    if not ledger.archive(transaction_id):
        raise NotFoundError("Transaction", transaction_id)
    return BorrowingResult(success=True, message="Transaction archived successfully!")

@router.post("/transactions/{transaction_id}/unarchive", response_model=BorrowingResult)
def unarchive_transaction(transaction_id: int, ledger: BorrowingLedger = Depends(get_ledger)):
    if not ledger.unarchive(transaction_id):
        raise NotFoundError("Transaction", transaction_id)
    return BorrowingResult(success=True, message="Transaction restored successfully!")
