from sqlalchemy import Column, DateTime, Integer, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship
from library_catalog.database import Base

class BorrowingTransaction(Base):
    __tablename__ = "borrowing_transaction"
    
    transaction_id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("book.book_id", ondelete="RESTRICT"), nullable=False, index=True)
    borrowed_date = Column(DateTime, nullable=False, index=True)
    returned_date = Column(DateTime, nullable=True)  # NULL while the loan is open
    is_archived = Column(Boolean, default=False, nullable=False)
    
    # Relationships
    book = relationship("Book", back_populates="transactions")
    
    __table_args__ = (
        Index("ix_borrowing_transaction_open", "book_id", "returned_date", "is_archived"),
    )
    
    @property
    def is_open(self) -> bool:
        return self.returned_date is None
    
    def to_dict(self):
        return {
            "id": self.transaction_id,
            "bookId": self.book_id,
            "borrowedDate": self.borrowed_date.isoformat() if self.borrowed_date else None,
            "returnedDate": self.returned_date.isoformat() if self.returned_date else None,
            "isArchived": self.is_archived,
            "book": self.book.to_dict() if self.book else None,
        }
