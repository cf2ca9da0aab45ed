from sqlalchemy import Column, String, Integer
from app.core.database import Base


class Category(Base):
    __tablename__ = "categories"
    # AUTOINCREMENT keeps SQLite from reusing the id of a deleted row
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)  # case-insensitive uniqueness is checked by LibraryService
