from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from typing import List, Optional
from library_catalog.dependencies import get_catalog_store, get_ledger
from library_catalog.schemas.book import BookResponse, BookDeleteInfo, CoverImage
from library_catalog.services.borrowing import BorrowingLedger
from library_catalog.services.catalog import CatalogStore

router = APIRouter(prefix="/api/books", tags=["Books"])


def _read_cover(upload: Optional[UploadFile]) -> Optional[CoverImage]:
    if upload is None or not upload.filename:
        return None
    return CoverImage(
        filename=upload.filename,
        content=upload.file.read(),
        content_type=upload.content_type,
    )

def _form_fields(**fields):
    """Drop form fields the client did not send."""
    return {key: value for key, value in fields.items() if value is not None}


@router.get("", response_model=List[BookResponse])
def list_books(
    catalog: CatalogStore = Depends(get_catalog_store),
    ledger: BorrowingLedger = Depends(get_ledger),
):
    """Active books with their current loan counts."""
    books = catalog.list_active()
    borrowed = ledger.borrowed_copies_for_books(book.book_id for book in books)
    responses = []
    for book in books:
        count = borrowed.get(book.book_id, 0)
        responses.append(BookResponse(
            **book.to_dict(),
            borrowedCopies=count,
            availableCopies=book.total_copies - count,
        ))
    return responses

@router.get("/deleted", response_model=List[BookResponse])
def list_deleted_books(catalog: CatalogStore = Depends(get_catalog_store)):
    return [BookResponse(**book.to_dict()) for book in catalog.list_deleted()]

@router.get("/{book_id}", response_model=BookResponse)
def get_book(book_id: int, catalog: CatalogStore = Depends(get_catalog_store)):
    return BookResponse(**catalog.get_by_id(book_id).to_dict())

@router.post("", response_model=BookResponse, status_code=status.HTTP_201_CREATED)
def create_book(
    title: str = Form(...),
    author: str = Form(...),
    description: Optional[str] = Form(None),
    genre: Optional[str] = Form(None),
    total_copies: Optional[int] = Form(None),
    cover_image: Optional[UploadFile] = File(None),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    """Add a book; the cover image is mandatory."""
    data = _form_fields(
        title=title,
        author=author,
        description=description,
        genre=genre,
        total_copies=total_copies,
    )
    book = catalog.create(data, _read_cover(cover_image))
    return BookResponse(**book.to_dict())

@router.put("/{book_id}", response_model=BookResponse)
def update_book(
    book_id: int,
    title: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    genre: Optional[str] = Form(None),
    total_copies: Optional[int] = Form(None),
    clear_description: bool = Form(False),
    cover_image: Optional[UploadFile] = File(None),
    catalog: CatalogStore = Depends(get_catalog_store),
):
    """Update book fields; the stored cover is replaced only when a new one is uploaded.

    Omitted fields are left alone. Send clear_description=true to remove the
    description.
    """
    patch = _form_fields(
        title=title,
        author=author,
        description=description,
        genre=genre,
        total_copies=total_copies,
    )
    if clear_description:
        patch["description"] = None
    book = catalog.update(book_id, patch, _read_cover(cover_image))
    return BookResponse(**book.to_dict())

@router.get("/{book_id}/delete-info", response_model=BookDeleteInfo)
def get_delete_info(book_id: int, catalog: CatalogStore = Depends(get_catalog_store)):
    return catalog.get_delete_info(book_id)

@router.delete("/{book_id}", response_model=BookResponse)
def delete_book(book_id: int, catalog: CatalogStore = Depends(get_catalog_store)):
    """Soft-delete a book. Answers 409 while copies are still on loan."""
    return BookResponse(**catalog.delete(book_id).to_dict())
