from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, String, Text

from .database import Base
from .lifecycle import ReviewArtifact, Status


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Paper(Base):
    __tablename__ = "papers"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, index=True)
    pdf_link = Column(String, nullable=False)
    deadline = Column(Date, nullable=False)
    status = Column(String, nullable=False, default=Status.current.value, index=True)
    summary = Column(Text, nullable=True)
    review_file_name = Column(String, nullable=True)
    review_file_url = Column(String, nullable=True)
    review_file_type = Column(String, nullable=True)
    review_file_key = Column(String, nullable=True)
    date_added = Column(Date, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=True)

    @property
    def review_file(self) -> ReviewArtifact | None:
        if self.review_file_url is None:
            return None
        return ReviewArtifact(
            name=self.review_file_name,
            url=self.review_file_url,
            content_type=self.review_file_type,
        )
