"""FastAPI server — thin HTTP wrapper over CatalogService, AuthGate and RangeStreamer."""

import logging
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, File, Form, Header, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from pydantic import BaseModel
from pydantic import ValidationError as PayloadError
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile as FormFile

from baluflix.auth import AuthGate
from baluflix.config import Settings, settings as default_settings
from baluflix.errors import BaluflixError, RangeNotSatisfiableError, StorageError, ValidationError
from baluflix.models import Principal, UploadedFile, VideoRecord
from baluflix.service import CatalogService
from baluflix.storage.jsonfile import JSONFileVideoRepository
from baluflix.storage.media import LocalMediaStore, MediaStore
from baluflix.storage.repository import VideoRepository
from baluflix.storage.sqlite import SQLiteVideoRepository
from baluflix.streaming import RangeStreamer

logger = logging.getLogger(__name__)


class ReferencePayload(BaseModel):
    """JSON body for adding a video by external URL."""

    title: str | None = None
    url: str | None = None
    type: str | None = None
    thumb: str | None = None


class LoginPayload(BaseModel):
    """JSON body for admin login."""

    username: str = ""
    password: str = ""


# --- dependencies -----------------------------------------------------------


def get_service(request: Request) -> CatalogService:
    return request.app.state.service


def get_auth(request: Request) -> AuthGate:
    return request.app.state.auth


def get_streamer(request: Request) -> RangeStreamer:
    return request.app.state.streamer


def get_media(request: Request) -> MediaStore:
    return request.app.state.media


def require_admin(
    auth: Annotated[AuthGate, Depends(get_auth)],
    authorization: Annotated[str | None, Header()] = None,
) -> Principal:
    """Reject the request before any catalog logic unless a valid token is sent."""
    return auth.authorize_header(authorization)


ServiceDep = Annotated[CatalogService, Depends(get_service)]
AdminDep = Annotated[Principal, Depends(require_admin)]


# --- routes -----------------------------------------------------------------

router = APIRouter()


@router.get("/")
def index() -> dict:
    return {"ok": True, "service": "baluflix"}


@router.get("/health")
def health(service: ServiceDep) -> JSONResponse:
    """Storage connectivity check."""
    if service.ping():
        return JSONResponse({"ok": True, "msg": "DB connected"})
    return JSONResponse({"ok": False, "msg": "DB unreachable"}, status_code=503)


@router.post("/auth/login")
def login(payload: LoginPayload, auth: Annotated[AuthGate, Depends(get_auth)]) -> dict:
    """Exchange admin credentials for a bearer token."""
    token = auth.login(payload.username, payload.password)
    return {
        "token": token.access_token,
        "token_type": token.token_type,
        "expires_at": token.expires_at.isoformat(),
    }


@router.get("/videos")
def list_published(service: ServiceDep) -> list[dict]:
    """Public listing of published videos, newest first."""
    return [_dump(v) for v in service.list_published()]


@router.get("/videos/all")
def list_all(service: ServiceDep, principal: AdminDep) -> list[dict]:
    """Every video regardless of state (admin only)."""
    return [_dump(v) for v in service.list_all()]


@router.post("/videos")
async def create_video(
    request: Request,
    service: ServiceDep,
    principal: AdminDep,
    media: Annotated[MediaStore, Depends(get_media)],
) -> dict:
    """Add a video: JSON bodies reference a URL, multipart bodies carry a file."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        async with request.form() as form:
            upload = form.get("video")
            uploaded = await run_in_threadpool(
                _store_upload, media, upload if isinstance(upload, FormFile) else None
            )
            record = await run_in_threadpool(
                service.create_from_upload,
                uploaded,
                principal.username,
                title=_form_text(form.get("title")),
                description=_form_text(form.get("description")),
            )
        return _dump(record)

    try:
        body = await request.json()
    except ValueError as e:
        raise ValidationError("title & url required") from e
    try:
        payload = ReferencePayload.model_validate(body if isinstance(body, dict) else {})
    except PayloadError as e:
        raise ValidationError("title & url required") from e
    record = await run_in_threadpool(
        service.create_from_reference,
        payload.title,
        payload.url,
        kind=payload.type,
        thumbnail=payload.thumb,
        uploaded_by=principal.username,
    )
    return _dump(record)


@router.post("/videos/upload")
def upload_video(
    service: ServiceDep,
    principal: AdminDep,
    media: Annotated[MediaStore, Depends(get_media)],
    video: Annotated[UploadFile | None, File()] = None,
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
) -> dict:
    """Receive a media file as an unpublished catalog entry."""
    uploaded = _store_upload(media, video)
    record = service.create_from_upload(
        uploaded, principal.username, title=title, description=description
    )
    return _dump(record)


@router.post("/videos/publish/{key}")
def publish_video(key: str, service: ServiceDep, principal: AdminDep) -> dict:
    """Make a video visible in the public listing."""
    return _dump(service.publish(key))


@router.get("/media/{ref}")
def stream_media(
    ref: str,
    streamer: Annotated[RangeStreamer, Depends(get_streamer)],
    range_header: Annotated[str | None, Header(alias="range")] = None,
) -> StreamingResponse:
    """Stream a stored media file, honoring single byte-range requests."""
    resp = streamer.serve(ref, range_header)
    return StreamingResponse(resp.body, status_code=resp.status, headers=resp.headers)


# --- helpers ----------------------------------------------------------------


def _dump(record: VideoRecord) -> dict:
    return record.model_dump(mode="json")


def _form_text(value) -> str | None:
    return value if isinstance(value, str) else None


def _store_upload(media: MediaStore, upload: FormFile | None) -> UploadedFile | None:
    """Persist a received multipart file; None when nothing was sent."""
    if upload is None or not upload.filename:
        return None
    try:
        return media.save(upload.file, upload.filename, upload.content_type or "")
    finally:
        upload.file.close()


_UPLOAD_PATHS = frozenset({"/videos", "/videos/upload"})


async def _reject_oversized_upload(request: Request, call_next) -> Response:
    """Refuse uploads whose declared length is over the media store limit.

    The declared length covers the whole multipart body, so it is an upper
    bound on the file size.
    """
    if request.method == "POST" and request.url.path in _UPLOAD_PATHS:
        limit = request.app.state.media.max_bytes
        declared = request.headers.get("content-length", "")
        if limit is not None and declared.isdigit() and int(declared) > limit:
            logger.warning("Rejected upload: %s bytes declared, limit %d", declared, limit)
            return _error_response(
                request, ValidationError(f"Upload exceeds the {limit} byte limit")
            )
    return await call_next(request)


def _error_response(request: Request, exc: BaluflixError) -> Response:
    if isinstance(exc, StorageError):
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.message)
        message = "Internal storage error"
    else:
        message = exc.message
    if isinstance(exc, RangeNotSatisfiableError):
        return PlainTextResponse(
            message,
            status_code=exc.status_code,
            headers={"Content-Range": f"bytes */{exc.size}"},
        )
    return JSONResponse(
        {"ok": False, "code": exc.code, "message": message},
        status_code=exc.status_code,
    )


# --- wiring -----------------------------------------------------------------


def build_repository(cfg: Settings) -> VideoRepository:
    """Construct the configured catalog storage backend."""
    if cfg.storage_backend == "json":
        return JSONFileVideoRepository(cfg.catalog_path)
    return SQLiteVideoRepository(str(cfg.db_path))


def build_auth(cfg: Settings) -> AuthGate:
    return AuthGate(
        admin_username=cfg.admin_username,
        admin_password=cfg.admin_password.get_secret_value(),
        secret=cfg.jwt_secret.get_secret_value(),
        algorithm=cfg.jwt_algorithm,
        token_ttl=timedelta(hours=cfg.token_ttl_hours),
    )


def create_app(
    cfg: Settings | None = None,
    *,
    service: CatalogService | None = None,
    auth: AuthGate | None = None,
    media: MediaStore | None = None,
) -> FastAPI:
    """Build the HTTP application with explicitly constructed collaborators.

    Any collaborator not supplied is built from ``cfg`` (defaults to the
    module-level settings).
    """
    cfg = cfg or default_settings
    if service is None or media is None:
        cfg.ensure_dirs()

    service = service or CatalogService(build_repository(cfg), cfg.default_published)
    auth = auth or build_auth(cfg)
    media = media or LocalMediaStore(cfg.uploads_dir, cfg.max_upload_bytes)

    app = FastAPI(title="baluflix", description="Video catalog with range streaming")
    app.state.service = service
    app.state.auth = auth
    app.state.media = media
    app.state.streamer = RangeStreamer(media, cfg.media_type, cfg.chunk_size)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Range", "Accept-Ranges", "Content-Length"],
    )
    app.middleware("http")(_reject_oversized_upload)
    app.add_exception_handler(BaluflixError, _error_response)
    app.include_router(router)
    return app
