"""FastAPI application exposing the document service to the dashboard UI."""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import asdict
from functools import lru_cache
from typing import Any, Dict, Iterator, List

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from tenderaudit.config import AppConfig
from tenderaudit.errors import (
    ConfigurationError,
    IndexSchemaError,
    IndexUpdateFailed,
    NoRenderableVariant,
    NotFound,
    ProtocolError,
    RemoteUnavailable,
    ResolutionCancelled,
    TenderAuditError,
)
from tenderaudit.index.resolver import parser_key
from tenderaudit.service import DocumentService

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="tenderaudit", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Checked in order; subclasses before their bases.
_ERROR_STATUS: list[tuple[type[TenderAuditError], int]] = [
    (ConfigurationError, 400),
    (NoRenderableVariant, 404),
    (NotFound, 404),
    (ResolutionCancelled, 409),
    (IndexSchemaError, 422),
    (ProtocolError, 502),
    (RemoteUnavailable, 502),
    (IndexUpdateFailed, 502),
]


class ResolvePayload(BaseModel):
    path: str
    previous_label: str | None = None


class DefaultVariantPayload(BaseModel):
    path: str
    label: str


class IndexPatchPayload(BaseModel):
    directory: str
    file_name: str
    meta: Dict[str, Any] | None = None
    parser_default: str | None = None


class MetadataPayload(BaseModel):
    path: str
    metadata: Dict[str, Any]


class PathPayload(BaseModel):
    path: str


class DeletePayload(BaseModel):
    paths: List[str]


class RenamePayload(BaseModel):
    source: str
    destination: str


class ProjectPayload(BaseModel):
    name: str


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return AppConfig.from_env()


def get_service(config: AppConfig = Depends(get_config)) -> Iterator[DocumentService]:
    service = DocumentService(config)
    try:
        yield service
    finally:
        service.close()


def _status_for(exc: TenderAuditError) -> int:
    for error_type, status in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status
    return 500


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.exception_handler(TenderAuditError)
async def handle_tenderaudit_error(request: Request, exc: TenderAuditError) -> JSONResponse:
    status = _status_for(exc)
    LOGGER.warning("%s %s failed (%s): %s", request.method, request.url.path, status, exc)
    body: Dict[str, Any] = {"detail": str(exc)}
    if isinstance(exc, NoRenderableVariant):
        body["attempted"] = exc.attempted
    return JSONResponse(body, status_code=status)


@app.get("/fs")
async def list_directory(
    path: str = "/",
    show_hidden: bool = False,
    service: DocumentService = Depends(get_service),
) -> List[Dict[str, Any]]:
    entries = await asyncio.to_thread(service.list_directory, path, show_hidden=show_hidden)
    return [asdict(entry) for entry in entries]


@app.get("/fs/read")
async def read_file(path: str, service: DocumentService = Depends(get_service)) -> Dict[str, str]:
    content = await asyncio.to_thread(service.read_text, path)
    return {"content": content}


@app.post("/fs/resolve")
async def resolve_document(
    payload: ResolvePayload, service: DocumentService = Depends(get_service)
) -> Dict[str, Any]:
    cancel = threading.Event()
    try:
        resolved = await asyncio.to_thread(
            service.resolve_document, payload.path, previous_label=payload.previous_label, cancel=cancel
        )
    except asyncio.CancelledError:
        cancel.set()
        raise
    return resolved.to_dict()


@app.post("/fs/default")
async def set_default_variant(
    payload: DefaultVariantPayload, service: DocumentService = Depends(get_service)
) -> Dict[str, Any]:
    await asyncio.to_thread(service.set_default_variant, payload.path, payload.label)
    return {"success": True, "default": parser_key(payload.label)}


@app.get("/fs/index")
async def get_index(directory: str, service: DocumentService = Depends(get_service)) -> Dict[str, Any]:
    index = await asyncio.to_thread(service.load_index, directory)
    return index.to_document()


@app.post("/fs/index")
async def patch_index(
    payload: IndexPatchPayload, service: DocumentService = Depends(get_service)
) -> Dict[str, Any]:
    index = await asyncio.to_thread(
        service.patch_index,
        payload.directory,
        payload.file_name,
        meta=payload.meta,
        default_parser=payload.parser_default,
    )
    return {"success": True, "index": index.to_document()}


@app.get("/fs/metadata")
async def load_metadata(path: str, service: DocumentService = Depends(get_service)) -> Any:
    return await asyncio.to_thread(service.load_metadata, path)


@app.post("/fs/metadata")
async def save_metadata(
    payload: MetadataPayload, service: DocumentService = Depends(get_service)
) -> Dict[str, Any]:
    saved = await asyncio.to_thread(service.save_metadata, payload.path, payload.metadata)
    return {"success": True, "metadata": saved}


@app.post("/fs/mkdir")
async def make_directory(payload: PathPayload, service: DocumentService = Depends(get_service)) -> Dict[str, Any]:
    created = await asyncio.to_thread(service.mkdir, payload.path)
    return {"success": True, "created": created}


@app.post("/fs/delete")
async def delete_paths(payload: DeletePayload, service: DocumentService = Depends(get_service)) -> JSONResponse:
    if not payload.paths:
        raise HTTPException(status_code=400, detail="No paths provided")
    results = await asyncio.to_thread(service.delete_paths, payload.paths)
    status = 200 if all(result.ok for result in results) else 207
    return JSONResponse([asdict(result) for result in results], status_code=status)


@app.post("/fs/rename")
async def rename_path(payload: RenamePayload, service: DocumentService = Depends(get_service)) -> Dict[str, Any]:
    await asyncio.to_thread(service.rename, payload.source, payload.destination)
    return {"success": True}


@app.post("/fs/upload")
async def upload_files(
    path: str,
    files: List[UploadFile] = File(...),
    service: DocumentService = Depends(get_service),
) -> List[Dict[str, Any]]:
    results: List[Dict[str, Any]] = []
    for upload in files:
        data = await upload.read()
        target = await asyncio.to_thread(service.upload, path, upload.filename or "upload", data)
        results.append({"name": upload.filename, "path": target, "ok": True})
    return results


@app.post("/projects")
async def init_project(payload: ProjectPayload, service: DocumentService = Depends(get_service)) -> Dict[str, Any]:
    name = payload.name.strip().strip("/")
    if not name or "/" in name:
        raise HTTPException(status_code=400, detail=f"Invalid project name: {payload.name!r}")
    created = await asyncio.to_thread(service.init_project, name)
    return {"success": True, "created": created}
