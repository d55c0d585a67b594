from fastapi import APIRouter

from app.api.routes import auth, recurrings

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(recurrings.router)
