from sqlalchemy import Boolean, Column, DateTime, Integer, String
from app.core.database import Base


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    filename = Column(String, nullable=False)     # opaque blob name inside UPLOAD_DIR
    size = Column(Integer, nullable=False)        # bytes
    # weak reference: no ForeignKey, dangling ids are shown as "Uncategorized"
    category_id = Column(Integer, nullable=True, index=True)
    thumbnail = Column(String, nullable=True)
    favorite = Column(Boolean, nullable=False, default=False, index=True)
    total_pages = Column(Integer, nullable=True)

    # stamped by the store's clock, not server_default, so both backends agree
    uploaded_at = Column(DateTime(timezone=True), nullable=False)
    last_opened_at = Column(DateTime(timezone=True), nullable=True)
