import enum
from sqlalchemy import Column, String, DateTime, Integer, Boolean, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from library_catalog.database import Base

class Genre(str, enum.Enum):
    UNKNOWN = "Unknown"
    SOFTWARE_ENGINEERING = "SoftwareEngineering"
    MYSTERY = "Mystery"
    THRILLER = "Thriller"
    ROMANCE = "Romance"
    HISTORY = "History"
    DRAMA = "Drama"

class Book(Base):
    __tablename__ = "book"
    
    book_id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False, index=True)
    author = Column(String(100), nullable=False, index=True)
    description = Column(String(500), nullable=True)
    genre = Column(Enum(Genre, name="book_genre"), default=Genre.UNKNOWN, nullable=False)
    total_copies = Column(Integer, default=0, nullable=False)  # copies owned, never decremented on loan
    image_path = Column(String(300), nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    transactions = relationship("BorrowingTransaction", back_populates="book")
    
    __table_args__ = (
        CheckConstraint("total_copies >= 0", name="chk_book_total_copies"),
    )
    
    def to_dict(self):
        return {
            "id": self.book_id,
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "genre": self.genre.value if self.genre else None,
            "totalCopies": self.total_copies,
            "imagePath": self.image_path,
            "isDeleted": self.is_deleted,
            "deletedAt": self.deleted_at.isoformat() if self.deleted_at else None,
        }
