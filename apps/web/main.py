"""FastAPI web application for crate-transit."""

import logging
import tomllib
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from cratetransit.errors import TransitError
from cratetransit.index import IndexEntry, checksum_from_hex
from cratetransit.parse_manifest import parse_manifest
from cratetransit.publish import CRATES_IO_INDEX, PublishPayload

logger = logging.getLogger(__name__)

app = FastAPI(
    title="crate-transit",
    description="Turn a Cargo.toml into a registry publish payload or index entry",
    version="0.1.0",
)


class PublishRequest(BaseModel):
    """Request model for building a publish payload."""
    manifest: str
    registry: str = CRATES_IO_INDEX
    readme: Optional[str] = None
    readme_file: Optional[str] = None


class IndexRequest(BaseModel):
    """Request model for building an index entry."""
    manifest: str
    checksum: str
    registry: str = CRATES_IO_INDEX


@app.get("/api/health")
async def health():
    """Report that the service is up."""
    return {"status": "ok"}


@app.post("/api/publish")
async def build_publish_payload(request: PublishRequest):
    """Build the publish payload for a manifest."""
    if not request.manifest.strip():
        raise HTTPException(status_code=400, detail="No manifest provided")

    try:
        manifest = parse_manifest(request.manifest)
        payload = PublishPayload.from_manifest(
            manifest,
            request.registry,
            readme=request.readme,
            readme_file=request.readme_file,
        )
    except (TransitError, tomllib.TOMLDecodeError) as e:
        logger.info("Rejected manifest: %s", e)
        raise HTTPException(status_code=400, detail=str(e))

    return payload.to_dict()


@app.post("/api/index")
async def build_index_entry(request: IndexRequest):
    """Build the index entry for a manifest and the checksum of its .crate file."""
    if not request.manifest.strip():
        raise HTTPException(status_code=400, detail="No manifest provided")

    try:
        checksum = checksum_from_hex(request.checksum)
        manifest = parse_manifest(request.manifest)
        entry = IndexEntry.from_manifest(manifest, request.registry, checksum)
    except (TransitError, tomllib.TOMLDecodeError) as e:
        logger.info("Rejected manifest: %s", e)
        raise HTTPException(status_code=400, detail=str(e))

    return entry.to_dict()


def run(host: str = "127.0.0.1", port: int = 8000, reload: bool = False) -> None:
    """Serve the API with uvicorn."""
    logger.info("Serving crate-transit API on http://%s:%d (docs at /docs)", host, port)
    uvicorn.run(
        "apps.web.main:app",
        host=host,
        port=port,
        reload=reload,
        reload_dirs=["apps", "cratetransit"] if reload else None,
    )


if __name__ == "__main__":
    run(host="0.0.0.0", reload=True)
