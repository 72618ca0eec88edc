"""Client-side view of the tracker.

``PaperSyncClient`` holds a local copy of every paper and keeps it in step
with the API. Every command is a request followed by a full refresh; the
local copy is never edited in place, so a failed request leaves it exactly
as it was.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional

import httpx
from pydantic import BaseModel

from .errors import (
    AuthenticationError,
    IllegalTransitionError,
    NotFoundError,
    StoreError,
    TrackerError,
    ValidationError,
)
from .lifecycle import (
    MISSED_GRACE_DAYS,
    ReviewArtifact,
    Status,
    is_accepted_review_type,
    is_overdue,
    papers_to_miss,
    prepare_completion,
)
from .scheduler import Debouncer, PeriodicTask

logger = logging.getLogger(__name__)


class PaperView(BaseModel):
    id: str
    name: str
    pdf_link: str
    deadline: date
    status: Status
    summary: Optional[str] = None
    review_file: Optional[ReviewArtifact] = None
    date_added: date


@dataclass
class StagedFile:
    filename: str
    data: bytes
    content_type: str


def stage_review_file(
    filename: str, data: bytes, content_type: Optional[str]
) -> Optional[StagedFile]:
    """Accept a review file for upload, or ``None`` if its type is not supported."""
    if not is_accepted_review_type(content_type):
        logger.debug(f"Ignoring review file {filename} of type {content_type}")
        return None
    return StagedFile(filename=filename, data=data, content_type=content_type)


def _detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("detail")
    except ValueError:
        detail = None
    return str(detail or response.text or response.reason_phrase)


class PaperSyncClient:
    def __init__(
        self,
        http: httpx.AsyncClient,
        today: Callable[[], date] = date.today,
        grace_days: int = MISSED_GRACE_DAYS,
        debounce: float = 1.0,
    ):
        self.http = http
        self.today = today
        self.grace_days = grace_days
        self.papers: list[PaperView] = []
        self.load = Debouncer(self._load_and_sweep, debounce)
        self._periodic: Optional[PeriodicTask] = None

    async def _request(
        self, method: str, url: str, paper_id: Optional[str] = None, **kwargs: Any
    ) -> httpx.Response:
        try:
            response = await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise StoreError(f"{method} {url} failed") from e
        if response.is_success:
            return response

        detail = _detail(response)
        logger.error(f"{method} {url} failed with {response.status_code}: {detail}")
        if response.status_code == 404:
            raise NotFoundError(paper_id or url)
        if response.status_code == 409:
            raise IllegalTransitionError(detail)
        if response.status_code in (400, 422):
            raise ValidationError(detail)
        if response.status_code in (401, 403):
            raise AuthenticationError(detail)
        raise StoreError(detail)

    async def _mutate(
        self, method: str, url: str, paper_id: Optional[str] = None, **kwargs: Any
    ) -> httpx.Response:
        response = await self._request(method, url, paper_id=paper_id, **kwargs)
        await self.refresh()
        return response

    async def authenticate(self, password: str) -> None:
        response = await self._request("POST", "/api/token", data={"password": password})
        token = response.json()["access_token"]
        self.http.headers["Authorization"] = f"Bearer {token}"

    async def refresh(self) -> list[PaperView]:
        response = await self._request("GET", "/api/papers")
        self.papers = [PaperView.model_validate(p) for p in response.json()]
        return self.papers

    def get(self, paper_id: str) -> Optional[PaperView]:
        return next((p for p in self.papers if p.id == paper_id), None)

    def by_status(self, status: Status) -> list[PaperView]:
        return [p for p in self.papers if p.status is status]

    def is_overdue(self, paper: PaperView) -> bool:
        return paper.status is Status.current and is_overdue(paper.deadline, self.today())

    async def add_paper(
        self,
        name: str,
        pdf_link: str,
        deadline: date,
        store_for_future: bool = False,
    ) -> PaperView:
        status = Status.future if store_for_future else Status.current
        response = await self._mutate(
            "POST",
            "/api/papers",
            json={
                "name": name,
                "pdf_link": pdf_link,
                "deadline": deadline.isoformat(),
                "status": status.value,
            },
        )
        return PaperView.model_validate(response.json())

    async def _set_status(self, paper_id: str, status: Status) -> None:
        await self._mutate(
            "PATCH",
            f"/api/papers/{paper_id}",
            paper_id=paper_id,
            data={"status": status.value},
        )

    async def store_for_later(self, paper_id: str) -> None:
        await self._set_status(paper_id, Status.future)

    async def move_to_current(self, paper_id: str) -> None:
        await self._set_status(paper_id, Status.current)

    async def resume(self, paper_id: str) -> None:
        await self._set_status(paper_id, Status.current)

    async def complete_review(
        self,
        paper_id: str,
        summary: str = "",
        review_file: Optional[StagedFile] = None,
    ) -> None:
        summary = prepare_completion(summary, review_file is not None)
        data = {"status": Status.completed.value}
        if summary is not None:
            data["summary"] = summary
        files = None
        if review_file is not None:
            files = {
                "reviewFile": (
                    review_file.filename,
                    review_file.data,
                    review_file.content_type,
                )
            }
        await self._mutate(
            "PATCH", f"/api/papers/{paper_id}", paper_id=paper_id, data=data, files=files
        )

    async def remove(self, paper_id: str) -> None:
        await self._mutate("DELETE", f"/api/papers/{paper_id}", paper_id=paper_id)

    async def sweep_missed(self) -> list[str]:
        """Move every eligible ``current`` paper in the local view to ``missed``."""
        due = papers_to_miss(self.papers, self.today(), self.grace_days)
        if not due:
            return []

        missed = []
        try:
            for paper in due:
                await self._request(
                    "PATCH",
                    f"/api/papers/{paper.id}",
                    paper_id=paper.id,
                    data={"status": Status.missed.value},
                )
                missed.append(paper.id)
        except TrackerError:
            logger.exception("Missed-paper sweep failed")
            if missed:
                await self.refresh()
            raise

        logger.info(f"Marked {len(missed)} paper(s) as missed")
        await self.refresh()
        return missed

    async def _load_and_sweep(self) -> list[str]:
        await self.refresh()
        return await self.sweep_missed()

    def start_auto_sweep(self, interval: float) -> PeriodicTask:
        """Load now and re-check for missed papers every ``interval`` seconds."""
        if self._periodic is None:
            self._periodic = PeriodicTask(self.load, interval)
        self._periodic.start()
        return self._periodic

    async def stop_auto_sweep(self) -> None:
        if self._periodic is not None:
            await self._periodic.stop()
        # the loop only awaited the debounced run through a shield
        await self.load.cancel()
