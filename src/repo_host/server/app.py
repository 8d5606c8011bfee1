"""FastAPI application exposing bare repositories over HTTP.

Routes map one-to-one onto ``repo_host.lib`` operations.  Library errors are
translated to responses by the exception handlers below: not-found causes
are logged and dropped, store faults are reported with their description.
"""

from __future__ import annotations

import logging
from functools import lru_cache

import pygit2
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ValidationInfo, field_validator

from repo_host import __version__
from repo_host.lib.config import Config
from repo_host.lib.errors import (
    InvalidSegmentError,
    NotFoundError,
    RepositoryExistsError,
    StoreError,
)
from repo_host.lib.git_store import (
    head_tree,
    list_branches,
    open_repository,
    read_blob,
)
from repo_host.lib.repo import RepoRef, create_repository, read_repo_file
from repo_host.lib.tree import BlameStrategy, materialize_head
from repo_host.lib.validation import validate_segment
from repo_host.server.middleware import GzipRequestMiddleware

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"

app = FastAPI(
    title="repo-host",
    description="HTTP API over bare Git repositories.",
    version=__version__,
)
app.add_middleware(GZipMiddleware, minimum_size=500)
app.add_middleware(GzipRequestMiddleware)


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Return the process-wide configuration."""
    return Config.from_env()


class CreateRepoRequest(BaseModel):
    """Request body for ``POST /repo``."""

    user: str
    name: str

    @field_validator("user", "name")
    @classmethod
    def _validate_segment(cls, value: str, info: ValidationInfo) -> str:
        return validate_segment(value, field=info.field_name or "segment")


@app.exception_handler(NotFoundError)
async def _not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    logger.debug("404 for %s: %s", request.url.path, exc.reason)
    return JSONResponse(status_code=404, content={"detail": "Not Found"})


@app.exception_handler(StoreError)
async def _store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("Object store error for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(RepositoryExistsError)
async def _exists_handler(request: Request, exc: RepositoryExistsError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": "Repository already exists"})


@app.exception_handler(InvalidSegmentError)
async def _invalid_segment_handler(
    request: Request, exc: InvalidSegmentError
) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _open(user: str, name: str, config: Config) -> pygit2.Repository:
    ref = RepoRef(user=user, name=name)
    return open_repository(ref.path(config.repos_root))


@app.get("/health")
def health() -> dict[str, str]:
    """Health check."""
    return {"status": "ok"}


@app.post("/repo")
def create_repo(
    req: CreateRepoRequest, config: Config = Depends(get_config)
) -> Response:
    """Provision a new bare repository for ``user``/``name``."""
    ref = RepoRef(user=req.user, name=req.name)
    create_repository(ref, config.repos_root, initial_head=config.default_branch)
    return Response(status_code=200)


@app.get("/repo/{user}/{name}")
def probe_repo(user: str, name: str, config: Config = Depends(get_config)) -> Response:
    """Check that the repository opens and HEAD peels to a tree."""
    head_tree(_open(user, name, config))
    return Response(status_code=200)


@app.get("/repo/{user}/{name}/files")
def repo_files(
    user: str,
    name: str,
    strategy: BlameStrategy | None = None,
    config: Config = Depends(get_config),
) -> JSONResponse:
    """Materialize the HEAD tree into a node graph."""
    repo = _open(user, name, config)
    root = materialize_head(
        repo, strategy=strategy or BlameStrategy(config.blame_strategy)
    )
    return JSONResponse(content=root.to_dict())


@app.get("/repo/{user}/{name}/branches")
def repo_branches(
    user: str, name: str, config: Config = Depends(get_config)
) -> JSONResponse:
    """List local branch names."""
    return JSONResponse(content=list_branches(_open(user, name, config)))


@app.get("/repo/{user}/{name}/blob/{branch}/{path:path}")
def repo_blob(
    user: str,
    name: str,
    branch: str,
    path: str,
    config: Config = Depends(get_config),
) -> Response:
    """Return the raw bytes of ``path`` on ``branch``."""
    data = read_blob(_open(user, name, config), branch, path)
    return Response(content=data, media_type=OCTET_STREAM)


@app.get("/repo/{user}/{name}/{path:path}")
def repo_static_file(
    user: str, name: str, path: str, config: Config = Depends(get_config)
) -> Response:
    """Serve a literal file from the repository directory (dumb protocol)."""
    ref = RepoRef(user=user, name=name)
    data = read_repo_file(ref, config.repos_root, path)
    return Response(content=data, media_type=OCTET_STREAM)
