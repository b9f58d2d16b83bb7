"""API routers."""

from fieldmap.api.routers.transfer import router as transfer_router

__all__ = ["transfer_router"]
