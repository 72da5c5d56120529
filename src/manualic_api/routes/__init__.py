from manualic_api.routes.documents import router as documents_router

__all__ = [
    "documents_router",
]
