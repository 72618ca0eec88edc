import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .errors import NotFoundError, StoreError

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = (
    "status",
    "summary",
    "review_file_name",
    "review_file_url",
    "review_file_type",
    "review_file_key",
)


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise StoreError(f"Failed to {action}") from e


def create_db_paper(db: Session, data: dict[str, Any]) -> models.Paper:
    db_paper = models.Paper(**data)
    db.add(db_paper)
    _commit(db, "add paper")
    db.refresh(db_paper)

    return db_paper


def list_db_papers(db: Session) -> list[models.Paper]:
    try:
        return (
            db.query(models.Paper)
            .order_by(models.Paper.created_at.desc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch papers: {e}")
        raise StoreError("Failed to fetch papers") from e


def get_db_paper(db: Session, paper_id: str) -> models.Paper:
    try:
        db_paper = db.get(models.Paper, paper_id)
    except SQLAlchemyError as e:
        logger.error(f"Failed to fetch paper {paper_id}: {e}")
        raise StoreError("Failed to fetch paper") from e
    if db_paper is None:
        raise NotFoundError(paper_id)
    return db_paper


def update_db_paper(db: Session, paper_id: str, data: dict[str, Any]) -> models.Paper:
    """Merge ``data`` into the paper; keys that are absent or ``None`` are left alone."""
    db_paper = get_db_paper(db, paper_id)
    for field in MUTABLE_FIELDS:
        value = data.get(field)
        if value is not None:
            setattr(db_paper, field, value)
    db_paper.updated_at = models.utcnow()
    _commit(db, "update paper")
    db.refresh(db_paper)

    return db_paper


def delete_db_paper(db: Session, paper_id: str) -> None:
    db_paper = get_db_paper(db, paper_id)
    db.delete(db_paper)
    _commit(db, "delete paper")
