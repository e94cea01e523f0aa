from pydantic import BaseModel, Field
from typing import Optional
from library_catalog.models.book import Genre

class BookBase(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    author: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    genre: Genre = Genre.UNKNOWN
    total_copies: int = Field(0, ge=0, le=100)

class BookCreate(BookBase):
    pass

class BookUpdate(BaseModel):
    """Partial update; only fields that were provided are applied."""
    title: Optional[str] = Field(None, min_length=2, max_length=200)
    author: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    genre: Optional[Genre] = None
    total_copies: Optional[int] = Field(None, ge=0, le=100)

class BookResponse(BaseModel):
    id: int
    title: str
    author: str
    description: Optional[str] = None
    genre: Optional[str] = None
    totalCopies: int
    imagePath: Optional[str] = None
    isDeleted: bool = False
    deletedAt: Optional[str] = None
    borrowedCopies: Optional[int] = None
    availableCopies: Optional[int] = None

class BookDeleteInfo(BaseModel):
    """Read-only preview of what deleting a book would decide."""
    book: BookResponse
    totalCopies: int
    borrowedCopies: int
    availableCopies: int
    canDeleteSafely: bool
    hasBorrowedCopies: bool

class CoverImage(BaseModel):
    """Uploaded cover image handed to the image store."""
    filename: str
    content: bytes = b""
    content_type: Optional[str] = None
    
    @property
    def is_empty(self) -> bool:
        return len(self.content) == 0
