from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from webtoolkit import (
    JSONEnvelope,
    ToolkitConfig,
    ToolkitError,
    download_static_file,
    error_json,
    read_json,
    slugify,
    upload_files,
    upload_one_file,
    write_json,
)
from webtoolkit.config import UPLOAD_DIR
from webtoolkit.security import is_safe_basename, safe_join


class SlugifyRequest(BaseModel):
    text: str


class SlugifyResult(BaseModel):
    slug: str


def _config(request: Request) -> ToolkitConfig:
    return request.app.state.toolkit_config


def _upload_dir(request: Request) -> Path:
    return request.app.state.upload_dir


async def _toolkit_error_handler(request: Request, exc: ToolkitError) -> JSONResponse:
    return error_json(exc, status_code=exc.status_code)


def create_app(config: Optional[ToolkitConfig] = None, upload_dir: Optional[Path] = None) -> FastAPI:
    app = FastAPI()
    app.state.toolkit_config = config or ToolkitConfig.from_env()
    app.state.upload_dir = Path(upload_dir or UPLOAD_DIR)

    # Allow browser apps served from another origin to call the API.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ToolkitError, _toolkit_error_handler)

    @app.get("/api/health")
    async def health() -> JSONResponse:
        return write_json(200, JSONEnvelope(message="ok"))

    @app.post("/api/files")
    async def upload(request: Request, rename: bool = True) -> JSONResponse:
        """Store every file part of a multipart request in the upload dir."""
        files = await upload_files(request, _upload_dir(request), rename=rename, config=_config(request))
        return write_json(201, JSONEnvelope(message=f"{len(files)} file(s) uploaded", data=files))

    @app.post("/api/files/one")
    async def upload_one(request: Request, rename: bool = True) -> JSONResponse:
        uploaded = await upload_one_file(request, _upload_dir(request), rename=rename, config=_config(request))
        return write_json(201, JSONEnvelope(message="file uploaded", data=uploaded))

    @app.get("/api/files/{filename}")
    async def download(request: Request, filename: str, display_name: Optional[str] = None) -> Response:
        """Serve an uploaded file as an attachment.

        Security:
        - filename must be a basename (no directories)
        - safe_join ensures it cannot escape the upload dir
        """
        if not is_safe_basename(filename):
            raise HTTPException(status_code=404, detail="Not found")
        try:
            path = safe_join(_upload_dir(request), filename)
        except ValueError:
            raise HTTPException(status_code=404, detail="Not found")
        if not path.is_file():
            raise HTTPException(status_code=404, detail="Not found")
        return download_static_file(path, display_name or filename, headers={"X-Content-Type-Options": "nosniff"})

    @app.post("/api/slugify")
    async def make_slug(request: Request) -> JSONResponse:
        payload = await read_json(request, SlugifyRequest, config=_config(request))
        result = SlugifyResult(slug=slugify(payload.text))
        return write_json(200, JSONEnvelope(message="slug created", data=result))

    return app


app = create_app()


if __name__ == "__main__":
    # Convenience: python server.py
    import uvicorn

    port = int(os.environ.get("PORT", "8010"))
    uvicorn.run("server:app", host="127.0.0.1", port=port, reload=False)
