"""FastAPI surface for stage validation and export."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import asdict
from pathlib import Path

from fastapi import BackgroundTasks, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field, field_validator
from starlette.concurrency import run_in_threadpool

from .. import __version__
from ..core import PackageFormat, RasterImage, Resolution, ValidationIssue, ValidationResult
from ..core.errors import (
    ExportBlockedError,
    ExportCancelledError,
    ExportError,
    InvalidImageError,
    ValidationError,
)
from ..core.exporter import export_stage
from ..core.geometry import derive_geometry
from ..core.image_codec import DEFAULT_CODEC
from ..core.project import LayerConfig, StageProject, parse_project
from ..core.validation import validate
from ..utils import file_tools, validators

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = int(os.environ.get("STAGE_STUDIO_MAX_UPLOAD_MB", "50")) * 1024 * 1024
WORK_DIR = Path(os.environ.get("STAGE_STUDIO_WORK_DIR", Path(tempfile.gettempdir()) / "stagestudio"))
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("STAGE_STUDIO_ALLOWED_ORIGINS", "http://localhost:8000").split(",")
    if origin.strip()
]


class IssuePayload(BaseModel):
    code: str
    message: str

    @classmethod
    def from_issue(cls, issue: ValidationIssue) -> "IssuePayload":
        return cls(code=issue.code.value, message=issue.message)


class ValidationResponse(BaseModel):
    """Validation outcome returned to the client."""

    valid: bool
    errors: list[IssuePayload] = Field(default_factory=list)
    warnings: list[IssuePayload] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: ValidationResult) -> "ValidationResponse":
        return cls(
            valid=result.is_valid,
            errors=[IssuePayload.from_issue(issue) for issue in result.errors],
            warnings=[IssuePayload.from_issue(issue) for issue in result.warnings],
        )


class DefaultsRequest(BaseModel):
    resolution: Resolution = Resolution.HD

    @field_validator("resolution", mode="before")
    @classmethod
    def _parse_resolution(cls, value):
        if value in (None, ""):
            return Resolution.HD
        return validators.parse_resolution(value)


class DefaultsResponse(BaseModel):
    image_width: int
    image_height: int
    resolution: str
    geometry: dict[str, int]


def create_app() -> FastAPI:
    file_tools.ensure_directory(WORK_DIR)
    app = FastAPI(title="Stage Studio", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/defaults", response_model=DefaultsResponse)
    async def stage_defaults(
        request: Request,
        image: UploadFile = File(...),
        resolution: str = Form("1280x720"),
    ) -> DefaultsResponse:
        _enforce_size_limit(request)
        try:
            settings = DefaultsRequest.model_validate({"resolution": resolution})
        except Exception as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        raster = await _decode_upload(image)
        geometry = derive_geometry(raster.width, raster.height, settings.resolution)
        return DefaultsResponse(
            image_width=raster.width,
            image_height=raster.height,
            resolution=settings.resolution.value,
            geometry=asdict(geometry),
        )

    @app.post("/api/validate", response_model=ValidationResponse)
    async def validate_stage(
        request: Request,
        images: list[UploadFile] = File(...),
        settings: str = Form("{}"),
    ) -> ValidationResponse:
        _enforce_size_limit(request)
        project = _parse_settings(settings)
        uploads = await _decode_uploads(images)
        spec = _build_document(project, uploads).freeze()
        result = await run_in_threadpool(validate, spec)
        return ValidationResponse.from_result(result)

    @app.post("/api/export")
    async def export_package(
        background_tasks: BackgroundTasks,
        request: Request,
        images: list[UploadFile] = File(...),
        settings: str = Form("{}"),
        accept_warnings: bool = Form(False),
    ) -> FileResponse:
        _enforce_size_limit(request)
        project = _parse_settings(settings)
        uploads = await _decode_uploads(images)
        document = _build_document(project, uploads)

        job_dir = Path(tempfile.mkdtemp(prefix="export-", dir=WORK_DIR))
        background_tasks.add_task(file_tools.remove_tree, job_dir)
        destination = job_dir / f"{file_tools.safe_stage_name(document.name)}.zip"
        try:
            outcome = await run_in_threadpool(
                export_stage,
                document,
                destination,
                PackageFormat.ZIP,
                lambda warnings: accept_warnings,
            )
        except (ExportBlockedError, ExportCancelledError) as exc:
            file_tools.remove_tree(job_dir)
            raise HTTPException(
                status_code=422,
                detail={"message": exc.detail, **ValidationResponse.from_result(exc.result).model_dump()},
            ) from exc
        except ExportError as exc:
            file_tools.remove_tree(job_dir)
            logger.error("Export failed (%s): %s", exc.kind, exc.detail)
            raise HTTPException(status_code=500, detail=exc.detail) from exc
        except Exception as exc:  # pragma: no cover
            file_tools.remove_tree(job_dir)
            logger.exception("Unexpected failure during export")
            raise HTTPException(status_code=500, detail="Unexpected error") from exc

        return FileResponse(
            outcome.output_path,
            media_type="application/zip",
            filename=outcome.output_path.name,
        )

    return app


def _parse_settings(settings: str) -> StageProject:
    try:
        payload = json.loads(settings) if settings else {}
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid settings JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Settings must be a JSON object")
    try:
        return parse_project(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


async def _decode_upload(file: UploadFile) -> RasterImage:
    data = await file.read()
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")
    try:
        return await run_in_threadpool(DEFAULT_CODEC.decode, data, file.filename or "upload")
    except InvalidImageError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


async def _decode_uploads(files: list[UploadFile]) -> dict[str, RasterImage]:
    decoded: dict[str, RasterImage] = {}
    for position, file in enumerate(files):
        key = file.filename or f"image{position}"
        if key in decoded:
            raise HTTPException(status_code=400, detail=f"Duplicate upload name '{key}'")
        decoded[key] = await _decode_upload(file)
    return decoded


def _build_document(project: StageProject, uploads: dict[str, RasterImage]):
    """Resolve layer images against the uploaded files (one layer per upload when none are listed)."""

    if not project.layers:
        project = project.model_copy(update={"layers": [LayerConfig(image=name) for name in uploads]})

    def load(reference: str) -> RasterImage:
        if reference not in uploads:
            raise HTTPException(status_code=400, detail=f"Layer image '{reference}' was not uploaded")
        return uploads[reference]

    return project.to_document(load)


def _enforce_size_limit(request: Request) -> None:
    """Simple guardrail on upload size based on Content-Length."""

    content_length = request.headers.get("content-length")
    if not content_length:
        return
    try:
        size = int(content_length)
    except ValueError:
        return
    # Multiple layers may be uploaded at once.
    if size > MAX_UPLOAD_BYTES * 4:
        raise HTTPException(status_code=413, detail="Upload exceeds limit")


app = create_app()


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("stagestudio.web.server:app", host="127.0.0.1", port=8000, reload=True)
