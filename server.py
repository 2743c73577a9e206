from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import uvicorn
from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Request, Response, UploadFile, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel, ConfigDict, Field

from app import DELETE_PROMPT, BookInventoryApp, FetchStatus
from config import settings
from form import Draft, validate_draft
from inventory import ReadOnlyRecordError, RecordNotFoundError
from media import ImageRejected, check_image, decode_image, read_upload

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def get_inventory_app() -> BookInventoryApp:
    if not hasattr(get_inventory_app, "_instance"):
        get_inventory_app._instance = BookInventoryApp(settings)
    return get_inventory_app._instance  # type: ignore[attr-defined]


# -----------------------------------------------------------------------------
# Application setup
# -----------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(_: FastAPI):
    state = get_inventory_app()
    fetch_task: Optional[asyncio.Task] = None
    if state.settings.fetch_on_startup:
        fetch_task = asyncio.create_task(state.load_recent_books())
    try:
        yield
    finally:
        if fetch_task is not None and not fetch_task.done():
            logger.info("Waiting for the catalog fetch to finish before shutdown")
            await fetch_task
        instance = getattr(get_inventory_app, "_instance", None)
        if isinstance(instance, BookInventoryApp):
            instance.close()


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)


# -----------------------------------------------------------------------------
# Pydantic models
# -----------------------------------------------------------------------------


class BookPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = ""
    author: str = ""
    published_date: str = Field(default="", alias="publishedDate")
    publisher: str = ""
    email: str = ""
    age: Optional[Union[float, str]] = None
    image: str = ""

    def to_draft(self) -> Draft:
        return Draft(
            title=self.title,
            author=self.author,
            published_date=self.published_date,
            publisher=self.publisher,
            email=self.email,
            age="" if self.age is None else str(self.age),
            image=self.image,
        )


class FetchState(BaseModel):
    status: str
    error: Optional[str] = None
    total: int


# -----------------------------------------------------------------------------
# Helper utilities
# -----------------------------------------------------------------------------


def _validated_draft(payload: BookPayload) -> Draft:
    draft = payload.to_draft()
    errors = validate_draft(draft)
    if errors:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"errors": errors})
    return draft


def _back_home() -> RedirectResponse:
    return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)


def _draft_form(
    title: str = Form(""),
    author: str = Form(""),
    published_date: str = Form("", alias="publishedDate"),
    publisher: str = Form(""),
    email: str = Form(""),
    age: str = Form(""),
) -> Dict[str, str]:
    return {
        "title": title,
        "author": author,
        "published_date": published_date,
        "publisher": publisher,
        "email": email,
        "age": age,
    }


# -----------------------------------------------------------------------------
# Page routes
# -----------------------------------------------------------------------------


@app.get("/", response_class=HTMLResponse)
async def index(request: Request, state: BookInventoryApp = Depends(get_inventory_app)) -> HTMLResponse:
    pending = state.inventory.get(state.pending_delete) if state.pending_delete else None
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "app_name": state.settings.app_name,
            "form": state.form,
            "books": state.inventory.list_books(),
            "loading": state.fetch_status is FetchStatus.LOADING,
            "fetch_error": state.fetch_error,
            "notices": state.pop_notices(),
            "pending_delete": pending,
            "delete_prompt": DELETE_PROMPT,
        },
    )


@app.post("/draft/submit")
async def submit_draft(
    values: Dict[str, str] = Depends(_draft_form),
    state: BookInventoryApp = Depends(get_inventory_app),
) -> RedirectResponse:
    state.form.update_fields(**values)
    state.submit()
    return _back_home()


@app.post("/draft/image")
async def upload_draft_image(
    values: Dict[str, str] = Depends(_draft_form),
    image: Optional[UploadFile] = File(None),
    state: BookInventoryApp = Depends(get_inventory_app),
) -> RedirectResponse:
    state.form.update_fields(**values)
    if image is not None and image.filename:
        content, size = await read_upload(image, state.settings.max_image_bytes)
        await state.form.select_image(image.content_type, content, size)
    return _back_home()


@app.post("/draft/cancel")
async def cancel_draft(state: BookInventoryApp = Depends(get_inventory_app)) -> RedirectResponse:
    state.cancel_edit()
    return _back_home()


@app.post("/books/{book_id}/edit")
async def edit_book_page(book_id: str, state: BookInventoryApp = Depends(get_inventory_app)) -> RedirectResponse:
    state.edit_book(book_id)
    return _back_home()


@app.post("/books/{book_id}/delete")
async def delete_book_page(book_id: str, state: BookInventoryApp = Depends(get_inventory_app)) -> RedirectResponse:
    state.request_delete(book_id)
    return _back_home()


@app.post("/delete/confirm")
async def confirm_delete_page(
    answer: str = Form("no"),
    state: BookInventoryApp = Depends(get_inventory_app),
) -> RedirectResponse:
    state.confirm_delete(answer == "yes")
    return _back_home()


# -----------------------------------------------------------------------------
# JSON routes
# -----------------------------------------------------------------------------


@app.get("/api/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/status", response_model=FetchState)
async def fetch_state(state: BookInventoryApp = Depends(get_inventory_app)) -> FetchState:
    return FetchState(
        status=state.fetch_status.value,
        error=state.fetch_error,
        total=len(state.inventory),
    )


@app.get("/api/books")
async def list_books(state: BookInventoryApp = Depends(get_inventory_app)) -> List[Dict[str, Any]]:
    return [book.to_dict() for book in state.inventory.list_books()]


@app.get("/api/books/{book_id}")
async def get_book(book_id: str, state: BookInventoryApp = Depends(get_inventory_app)) -> Dict[str, Any]:
    record = state.inventory.get(book_id)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
    return record.to_dict()


@app.post("/api/books", status_code=status.HTTP_201_CREATED)
async def create_book(
    payload: BookPayload,
    state: BookInventoryApp = Depends(get_inventory_app),
) -> Dict[str, Any]:
    draft = _validated_draft(payload)
    return state.inventory.add(draft.to_fields()).to_dict()


@app.put("/api/books/{book_id}")
async def update_book(
    book_id: str,
    payload: BookPayload,
    state: BookInventoryApp = Depends(get_inventory_app),
) -> Dict[str, Any]:
    draft = _validated_draft(payload)
    try:
        record = state.inventory.update(book_id, draft.to_fields())
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ReadOnlyRecordError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    return record.to_dict()


@app.delete(
    "/api/books/{book_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    response_model=None,
)
async def delete_book(
    book_id: str,
    confirm: bool = Query(False),
    state: BookInventoryApp = Depends(get_inventory_app),
) -> Response:
    try:
        removed = state.inventory.delete(book_id, confirm=lambda: confirm)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ReadOnlyRecordError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if not removed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Deletion must be confirmed")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/api/images")
async def upload_image(
    image: UploadFile = File(...),
    state: BookInventoryApp = Depends(get_inventory_app),
) -> Dict[str, str]:
    content, size = await read_upload(image, state.settings.max_image_bytes)
    try:
        check_image(image.content_type, size, state.settings.max_image_bytes)
        data_url = await decode_image(content, image.content_type or "")
    except ImageRejected as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"errors": {"image": str(exc)}})
    return {"image": data_url}


def main() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    main()
