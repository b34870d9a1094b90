from fastapi import FastAPI

from .auth import router as auth_router
from .cafes import router as cafes_router
from .connections import router as connections_router
from .matches import router as matches_router
from .notifications import router as notifications_router
from .preferences import router as preferences_router
from .profile import router as profile_router


def include_routers(app: FastAPI) -> None:
    app.include_router(auth_router, prefix="/auth", tags=["auth"])
    app.include_router(profile_router, tags=["users"])
    app.include_router(preferences_router, tags=["preferences"])
    app.include_router(matches_router, tags=["matches"])
    app.include_router(connections_router, tags=["connections"])
    app.include_router(notifications_router, tags=["notifications"])
    app.include_router(cafes_router, tags=["cafes"])


__all__ = ["include_routers"]
