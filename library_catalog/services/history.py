"""Filtering, ordering and paging of borrowing history.

Each step is a plain function over a list of transactions so the
search, status and date predicates can be applied and tested on their own.
"""
import calendar
import math
from datetime import date, timedelta
from typing import Generic, List, Sequence, TypeVar
from library_catalog.models.borrowing_transaction import BorrowingTransaction

T = TypeVar("T")

STATUS_BORROWED = "borrowed"
STATUS_RETURNED = "returned"

DATE_TODAY = "today"
DATE_WEEK = "week"
DATE_MONTH = "month"
DATE_YEAR = "year"


def subtract_months(day: date, months: int) -> date:
    """Go back a number of calendar months, clamping to the last day of the month."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def filter_by_search(transactions: Sequence[BorrowingTransaction], search_term: str) -> List[BorrowingTransaction]:
    if not search_term or not search_term.strip():
        return list(transactions)
    
    needle = search_term.strip().lower()
    
    def matches(transaction):
        book = transaction.book
        if book is None:
            return False
        return needle in (book.title or "").lower() or needle in (book.author or "").lower()
    
    return [t for t in transactions if matches(t)]


def filter_by_status(transactions: Sequence[BorrowingTransaction], status: str) -> List[BorrowingTransaction]:
    normalized = (status or "").strip().lower()
    if normalized == STATUS_BORROWED:
        return [t for t in transactions if t.returned_date is None]
    if normalized == STATUS_RETURNED:
        return [t for t in transactions if t.returned_date is not None]
    return list(transactions)


def date_filter_start(date_filter: str, today: date):
    """Earliest borrowed day admitted by a date filter, or None for no filter."""
    normalized = (date_filter or "").strip().lower()
    if normalized == DATE_TODAY:
        return today
    if normalized == DATE_WEEK:
        return today - timedelta(days=7)
    if normalized == DATE_MONTH:
        return subtract_months(today, 1)
    if normalized == DATE_YEAR:
        return subtract_months(today, 12)
    return None


def filter_by_date(transactions: Sequence[BorrowingTransaction], date_filter: str, today: date) -> List[BorrowingTransaction]:
    start = date_filter_start(date_filter, today)
    if start is None:
        return list(transactions)
    if (date_filter or "").strip().lower() == DATE_TODAY:
        return [t for t in transactions if t.borrowed_date.date() == today]
    return [t for t in transactions if t.borrowed_date.date() >= start]


def sort_newest_first(transactions: Sequence[BorrowingTransaction]) -> List[BorrowingTransaction]:
    return sorted(
        transactions,
        key=lambda t: (t.borrowed_date, t.transaction_id or 0),
        reverse=True,
    )


class PaginatedList(Generic[T]):
    """One page of results plus the totals needed to render a pager."""
    
    def __init__(self, items: List[T], count: int, page_index: int, page_size: int):
        self.items = items
        self.page_index = page_index
        self.page_size = page_size
        self.total_count = count
        self.total_pages = math.ceil(count / page_size) if page_size > 0 else 0
    
    @property
    def has_previous_page(self) -> bool:
        return self.page_index > 1
    
    @property
    def has_next_page(self) -> bool:
        return self.page_index < self.total_pages
    
    @classmethod
    def create(cls, source: Sequence[T], page_index: int, page_size: int) -> "PaginatedList[T]":
        count = len(source)
        if page_index < 1:
            items = []
        else:
            start = (page_index - 1) * page_size
            items = list(source[start:start + page_size])
        return cls(items, count, page_index, page_size)
    
    def __len__(self):
        return len(self.items)
    
    def __iter__(self):
        return iter(self.items)
