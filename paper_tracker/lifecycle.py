"""Paper lifecycle rules.

Papers move between four statuses. Users drive most transitions explicitly;
the only automatic one is the sweep that marks long-overdue ``current``
papers as ``missed``. Nothing here touches storage, so every rule can be
checked without a database or a bucket.
"""

from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Optional, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict

from .errors import IllegalTransitionError, ValidationError

MISSED_GRACE_DAYS = 7

ACCEPTED_REVIEW_TYPES = frozenset(
    {
        "application/pdf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
    }
)


class Status(str, Enum):
    current = "current"
    future = "future"
    completed = "completed"
    missed = "missed"


INITIAL_STATUSES = frozenset({Status.current, Status.future})

# (from, to) pairs a user may request directly
COMMAND_TRANSITIONS = frozenset(
    {
        (Status.current, Status.future),
        (Status.future, Status.current),
        (Status.missed, Status.future),
        (Status.missed, Status.current),
        (Status.current, Status.completed),
        (Status.missed, Status.completed),
    }
)

# Only reachable through the sweep
AUTOMATIC_TRANSITIONS = frozenset({(Status.current, Status.missed)})


class ReviewArtifact(BaseModel):
    """An uploaded review file attached to a completed paper."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    content_type: str


class Dated(Protocol):
    status: str
    deadline: date


P = TypeVar("P", bound=Dated)


def is_overdue(deadline: date, today: date) -> bool:
    """Display flag: the deadline has passed."""
    return today > deadline


def is_missed_eligible(
    deadline: date, today: date, grace_days: int = MISSED_GRACE_DAYS
) -> bool:
    return today > deadline + timedelta(days=grace_days)


def is_accepted_review_type(content_type: Optional[str]) -> bool:
    return content_type in ACCEPTED_REVIEW_TYPES


def check_initial_status(status: str) -> Status:
    try:
        status = Status(status)
    except ValueError:
        raise ValidationError(f"Unknown status: {status}")
    if status not in INITIAL_STATUSES:
        raise ValidationError(f"A new paper cannot start as {status.value}")
    return status


def check_transition(
    src: str,
    dst: str,
    *,
    deadline: date,
    today: date,
    grace_days: int = MISSED_GRACE_DAYS,
) -> Status:
    """Validate ``src -> dst`` and return the target status.

    Raises ``IllegalTransitionError`` when the pair is not allowed. Moving a
    ``current`` paper to ``missed`` is only accepted once the paper is past
    the grace period on ``today``.
    """
    try:
        src, dst = Status(src), Status(dst)
    except ValueError as exc:
        raise ValidationError(str(exc))

    if (src, dst) in COMMAND_TRANSITIONS:
        return dst
    if (src, dst) in AUTOMATIC_TRANSITIONS:
        if is_missed_eligible(deadline, today, grace_days):
            return dst
        raise IllegalTransitionError(
            f"Paper is not yet {grace_days} days past its deadline"
        )
    if src is Status.completed:
        raise IllegalTransitionError("Completed papers cannot change status")
    raise IllegalTransitionError(f"Cannot move a paper from {src.value} to {dst.value}")


def papers_to_miss(
    papers: Iterable[P], today: date, grace_days: int = MISSED_GRACE_DAYS
) -> list[P]:
    """Return the ``current`` papers the sweep should mark as missed."""
    return [
        paper
        for paper in papers
        if paper.status == Status.current
        and is_missed_eligible(paper.deadline, today, grace_days)
    ]


def prepare_completion(summary: Optional[str], has_file: bool) -> Optional[str]:
    """Normalize the summary for a completion request.

    Returns the trimmed summary, or ``None`` when it is blank. A completion
    needs at least a summary or a file.
    """
    summary = (summary or "").strip() or None
    if summary is None and not has_file:
        raise ValidationError("A summary or a review file is required")
    return summary
