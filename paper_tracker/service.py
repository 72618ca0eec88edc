"""Review commands.

Each command validates with the lifecycle rules first and only then talks
to the record store and the blob store, so a rejected command leaves both
untouched. A command either persists the new status together with every
field it requires or changes nothing.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from . import crud, models
from .errors import BlobError, IllegalTransitionError, StoreError, ValidationError
from .lifecycle import (
    MISSED_GRACE_DAYS,
    Status,
    check_initial_status,
    check_transition,
    is_accepted_review_type,
    papers_to_miss,
    prepare_completion,
)
from .storage import BlobStore, review_file_key

logger = logging.getLogger(__name__)


@dataclass
class ReviewUpload:
    filename: str
    data: bytes
    content_type: str


def add_paper(
    db: Session,
    *,
    name: str,
    pdf_link: str,
    deadline: date,
    status: str,
    today: date,
) -> models.Paper:
    name = (name or "").strip()
    pdf_link = (pdf_link or "").strip()
    if not name or not pdf_link or deadline is None:
        raise ValidationError("Missing required fields")
    status = check_initial_status(status)

    db_paper = crud.create_db_paper(
        db,
        data={
            "id": uuid.uuid4().hex,
            "name": name,
            "pdf_link": pdf_link,
            "deadline": deadline,
            "status": status.value,
            "date_added": today,
            "created_at": models.utcnow(),
        },
    )
    logger.info(f"Added paper {db_paper.id} as {status.value}")
    return db_paper


def list_papers(db: Session) -> list[models.Paper]:
    return crud.list_db_papers(db)


def update_paper(
    db: Session,
    paper_id: str,
    *,
    today: date,
    status: Optional[str] = None,
    summary: Optional[str] = None,
    review_file: Optional[ReviewUpload] = None,
    blobs: Optional[BlobStore] = None,
    grace_days: int = MISSED_GRACE_DAYS,
) -> models.Paper:
    """Merge a partial update into a paper.

    A summary or review file is only accepted as part of completing the
    paper. When a file is given it is uploaded before the record is
    written and removed again if the write fails.
    """
    db_paper = crud.get_db_paper(db, paper_id)

    if status is None:
        if summary is not None or review_file is not None:
            raise ValidationError("A summary or review file can only be added on completion")
        return db_paper

    target = check_transition(
        db_paper.status,
        status,
        deadline=db_paper.deadline,
        today=today,
        grace_days=grace_days,
    )
    fields = {"status": target.value}

    if target is not Status.completed:
        if summary is not None or review_file is not None:
            raise ValidationError("A summary or review file can only be added on completion")
    else:
        fields["summary"] = prepare_completion(summary, review_file is not None)
        if review_file is not None:
            if not is_accepted_review_type(review_file.content_type):
                raise ValidationError(f"Unsupported file type: {review_file.content_type}")
            if blobs is None:
                raise StoreError("No blob store configured for review files")
            key = review_file_key(paper_id, review_file.filename)
            url = blobs.put(key, review_file.data, review_file.content_type)
            fields.update(
                review_file_name=review_file.filename,
                review_file_url=url,
                review_file_type=review_file.content_type,
                review_file_key=key,
            )

    try:
        db_paper = crud.update_db_paper(db, paper_id, fields)
    except StoreError:
        if "review_file_key" in fields:
            _discard_blob(blobs, fields["review_file_key"])
        raise

    logger.info(f"Paper {paper_id} moved to {target.value}")
    return db_paper


def _discard_blob(blobs: BlobStore, key: str) -> None:
    try:
        blobs.delete(key)
    except BlobError:
        logger.exception(f"Could not remove orphaned review file {key}")


def _run_command(
    db: Session,
    paper_id: str,
    target: Status,
    allowed_from: Iterable[Status],
    today: date,
) -> models.Paper:
    db_paper = crud.get_db_paper(db, paper_id)
    if db_paper.status not in {s.value for s in allowed_from}:
        raise IllegalTransitionError(
            f"Cannot move a paper from {db_paper.status} to {target.value}"
        )
    return update_paper(db, paper_id, today=today, status=target.value)


def store_for_later(db: Session, paper_id: str, today: date) -> models.Paper:
    return _run_command(
        db, paper_id, Status.future, (Status.current, Status.missed), today
    )


def move_to_current(db: Session, paper_id: str, today: date) -> models.Paper:
    return _run_command(db, paper_id, Status.current, (Status.future,), today)


def resume(db: Session, paper_id: str, today: date) -> models.Paper:
    return _run_command(db, paper_id, Status.current, (Status.missed,), today)


def complete_review(
    db: Session,
    blobs: Optional[BlobStore],
    paper_id: str,
    *,
    today: date,
    summary: Optional[str] = None,
    review_file: Optional[ReviewUpload] = None,
) -> models.Paper:
    return update_paper(
        db,
        paper_id,
        today=today,
        status=Status.completed.value,
        summary=summary,
        review_file=review_file,
        blobs=blobs,
    )


def remove_paper(db: Session, blobs: Optional[BlobStore], paper_id: str) -> None:
    """Delete a paper and the review file stored for it."""
    db_paper = crud.get_db_paper(db, paper_id)
    if db_paper.review_file_key:
        if blobs is None:
            raise StoreError("No blob store configured for review files")
        blobs.delete(db_paper.review_file_key)
    crud.delete_db_paper(db, paper_id)
    logger.info(f"Removed paper {paper_id}")


def sweep_missed(
    db: Session, today: date, grace_days: int = MISSED_GRACE_DAYS
) -> list[str]:
    """Mark every ``current`` paper past its grace period as missed."""
    due = papers_to_miss(crud.list_db_papers(db), today, grace_days)
    missed = []
    for db_paper in due:
        crud.update_db_paper(db, db_paper.id, {"status": Status.missed.value})
        missed.append(db_paper.id)
    if missed:
        logger.info(f"Sweep marked {len(missed)} paper(s) as missed")
    return missed
