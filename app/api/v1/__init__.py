"""V1 API router aggregation."""

from fastapi import APIRouter

from app.api.v1.admin import router as admin_router
from app.api.v1.auth import router as auth_router
from app.api.v1.directory import router as directory_router
from app.api.v1.my_business import router as my_business_router
from app.api.v1.users import router as users_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(auth_router)
v1_router.include_router(directory_router)
v1_router.include_router(my_business_router)
v1_router.include_router(admin_router)
v1_router.include_router(users_router)
