"""FieldMap HTTP application.

Holds one in-memory map (waypoints, shapes, track) on ``app.state`` and
exposes import/export through the transfer router.
"""

from fastapi import FastAPI
from loguru import logger

from fieldmap.api.routers import transfer_router
from fieldmap.config import settings
from fieldmap.stores import ShapeStore, TrackStore, WaypointStore
from fieldmap.transfer import TransferManager


def create_app() -> FastAPI:
    """Build the FastAPI app with fresh in-memory stores."""
    app = FastAPI(
        title=settings.app_name,
        description="Waypoints, drawn shapes and GPS tracks with KML/GPX/JSON interchange",
        version="0.1.0",
        debug=settings.debug,
    )

    app.state.waypoints = WaypointStore()
    app.state.shapes = ShapeStore()
    app.state.track = TrackStore()
    app.state.transfer = TransferManager(
        app.state.waypoints, app.state.shapes, app.state.track,
    )

    app.include_router(transfer_router)

    @app.get("/health")
    async def health():
        return {"status": "ok", "app": settings.app_name}

    logger.info(f"{settings.app_name} API ready")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fieldmap.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
