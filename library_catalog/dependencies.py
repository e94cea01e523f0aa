from fastapi import Depends
from sqlalchemy.orm import Session
from library_catalog.database import get_db
from library_catalog.repositories.unit_of_work import UnitOfWork
from library_catalog.services.borrowing import BorrowingLedger
from library_catalog.services.catalog import CatalogStore
from library_catalog.services.image_store import ImageStore


def get_unit_of_work(db: Session = Depends(get_db)) -> UnitOfWork:
    return UnitOfWork(db)

def get_image_store() -> ImageStore:
    return ImageStore()

def get_ledger(uow: UnitOfWork = Depends(get_unit_of_work)) -> BorrowingLedger:
    return BorrowingLedger(uow)

def get_catalog_store(
    uow: UnitOfWork = Depends(get_unit_of_work),
    images: ImageStore = Depends(get_image_store),
    ledger: BorrowingLedger = Depends(get_ledger),
) -> CatalogStore:
    return CatalogStore(uow, images, ledger)
