from fastapi import FastAPI
from session_service.routes.admin_routes import admin_router
from session_service.routes.auth_route import auth_router
from session_service.routes.session_routes import session_router
from session_service.routes.user_routes import user_router


def register_routers(app: FastAPI):
    """Register all API routers here."""
    app.include_router(auth_router)
    app.include_router(session_router)
    app.include_router(user_router)
    app.include_router(admin_router)
