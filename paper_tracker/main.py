import logging
from datetime import date
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from . import config, models, service
from .auth import AUTH_COOKIE, check_password, is_authenticated, issue_token, require_auth
from .config import configure_logging, get_settings
from .database import engine, get_db
from .errors import (
    IllegalTransitionError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from .lifecycle import ReviewArtifact, Status, is_overdue
from .storage import BlobStore, get_blob_store

HERE = Path(__file__).parent
templates = Jinja2Templates(directory=HERE / "templates")

configure_logging(get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Paper Review Tracker")
app.mount("/static", StaticFiles(directory=HERE / "static"), name="static")
models.Base.metadata.create_all(bind=engine)


TAB_ORDER = (Status.current, Status.future, Status.missed, Status.completed)


def get_today() -> date:
    return date.today()


class PaperModel(BaseModel):
    id: str
    name: str
    pdf_link: str
    deadline: date
    status: Status
    summary: Optional[str] = None
    review_file: Optional[ReviewArtifact] = None
    date_added: date

    model_config = ConfigDict(from_attributes=True)


class PaperCreate(BaseModel):
    name: str
    pdf_link: str
    deadline: date
    status: str


class SweepResult(BaseModel):
    missed: list[str]


@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: ValidationError):
    status_code = 409 if isinstance(exc, IllegalTransitionError) else 400
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def handle_not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": "Paper not found"})


@app.exception_handler(StoreError)
async def handle_store_error(request: Request, exc: StoreError):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Storage operation failed"})


@app.get("/", response_class=HTMLResponse)
async def display_all_papers(
    request: Request,
    db: Session = Depends(get_db),
    settings: config.Settings = Depends(get_settings),
    today: date = Depends(get_today),
):
    if not is_authenticated(request, settings):
        return RedirectResponse("/login", status_code=302)
    service.sweep_missed(db, today, settings.missed_grace_days)
    papers = service.list_papers(db)
    tabs = {status: [p for p in papers if p.status == status.value] for status in TAB_ORDER}
    return templates.TemplateResponse(
        request,
        "index.html",
        {"tabs": tabs, "today": today, "is_overdue": is_overdue},
    )


@app.get("/login", response_class=HTMLResponse)
async def display_login_page(request: Request):
    return templates.TemplateResponse(request, "login.html", {"error": None})


@app.post("/login")
async def login(
    request: Request,
    password: str = Form(),
    settings: config.Settings = Depends(get_settings),
):
    if not check_password(settings, password):
        return templates.TemplateResponse(
            request, "login.html", {"error": "Wrong password"}, status_code=401
        )
    response = RedirectResponse("/", status_code=302)
    response.set_cookie(AUTH_COOKIE, issue_token(settings), httponly=True)
    return response


@app.post("/api/token")
async def create_token(
    password: str = Form(),
    settings: config.Settings = Depends(get_settings),
):
    if not check_password(settings, password):
        raise HTTPException(status_code=401, detail="Wrong password")
    return {"access_token": issue_token(settings), "token_type": "bearer"}


@app.get(
    "/api/papers",
    response_model=list[PaperModel],
    dependencies=[Depends(require_auth)],
)
async def list_papers(db: Session = Depends(get_db)):
    return service.list_papers(db)


@app.post(
    "/api/papers",
    response_model=PaperModel,
    status_code=201,
    dependencies=[Depends(require_auth)],
)
async def create_paper(
    paper: PaperCreate,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    return service.add_paper(
        db,
        name=paper.name,
        pdf_link=paper.pdf_link,
        deadline=paper.deadline,
        status=paper.status,
        today=today,
    )


@app.post(
    "/api/papers/sweep",
    response_model=SweepResult,
    dependencies=[Depends(require_auth)],
)
async def sweep_papers(
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: config.Settings = Depends(get_settings),
):
    return {"missed": service.sweep_missed(db, today, settings.missed_grace_days)}


@app.patch(
    "/api/papers/{paper_id}",
    response_model=PaperModel,
    dependencies=[Depends(require_auth)],
)
async def update_paper(
    paper_id: str,
    status: Optional[str] = Form(None),
    summary: Optional[str] = Form(None),
    review_file: Optional[UploadFile] = File(None, alias="reviewFile"),
    db: Session = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
    today: date = Depends(get_today),
    settings: config.Settings = Depends(get_settings),
):
    upload = None
    # browsers submit an empty part when no file was chosen
    if review_file is not None and review_file.filename:
        upload = service.ReviewUpload(
            filename=review_file.filename,
            data=await review_file.read(),
            content_type=review_file.content_type,
        )
    return service.update_paper(
        db,
        paper_id,
        today=today,
        status=status,
        summary=summary,
        review_file=upload,
        blobs=blobs,
        grace_days=settings.missed_grace_days,
    )


@app.delete("/api/papers/{paper_id}", dependencies=[Depends(require_auth)])
async def delete_paper(
    paper_id: str,
    db: Session = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    service.remove_paper(db, blobs, paper_id)
    return {"message": "Paper deleted"}
