"""Map transfer API — snapshot, file export/import, shape and track readouts."""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel

from fieldmap.metrics import shape_metrics, track_stats
from fieldmap.model import ShapeKind
from fieldmap.transfer import (
    ExportFailed,
    ImportFailed,
    TransferManager,
    UnsupportedFormat,
)

router = APIRouter(prefix="/api/map", tags=["map"])


class ImportRequest(BaseModel):
    """File content uploaded for import."""
    filename: str = ""
    content: str
    format: str = "auto"


def _get_manager(request: Request) -> TransferManager:
    return request.app.state.transfer


@router.get("/snapshot")
async def get_snapshot(request: Request):
    """The whole map in backup form (drawings / markers / track)."""
    return _get_manager(request).build_snapshot().to_dict()


@router.get("/export/{fmt}")
async def export_map(fmt: str, request: Request) -> Response:
    """Download the map as json, kml or gpx."""
    try:
        exported = _get_manager(request).export(fmt)
    except UnsupportedFormat as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExportFailed as e:
        raise HTTPException(status_code=500, detail=str(e))

    return Response(
        content=exported.content,
        media_type=exported.mime_type,
        headers={
            "Content-Disposition": f'attachment; filename="{exported.filename}"',
        },
    )


@router.post("/import")
async def import_map(body: ImportRequest, request: Request):
    """Import file content; the format comes from the filename or content."""
    try:
        summary = _get_manager(request).import_text(
            body.content, filename=body.filename, format=body.format,
        )
    except (ImportFailed, UnsupportedFormat) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return summary.to_dict()


@router.get("/shapes")
async def list_shapes(request: Request):
    """Every drawn shape with its measurements."""
    shapes = []
    for shape in _get_manager(request).build_snapshot().shapes:
        if shape.kind is ShapeKind.CIRCLE:
            geometry = shape.to_circle_dict()
        else:
            geometry = shape.to_feature()["geometry"]
        shapes.append({
            "name": shape.name,
            "kind": shape.kind.value,
            "geometry": geometry,
            "metrics": shape_metrics(shape).to_dict(),
        })
    return shapes


@router.get("/track")
async def get_track(request: Request):
    """Recorded track points and summary statistics."""
    track = _get_manager(request).build_snapshot().track
    return {
        "points": [p.to_dict() for p in track],
        "stats": track_stats(track).to_dict(),
    }
