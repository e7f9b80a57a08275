"""
API v1 router aggregating all endpoints.
"""

from fastapi import APIRouter

from api.v1.admin import router as admin_router
from api.v1.auth import router as auth_router
from api.v1.issues import router as issues_router
from api.v1.navigation import router as navigation_router
from api.v1.users import router as users_router

router = APIRouter()

router.include_router(auth_router, prefix="/auth", tags=["Authentication"])
router.include_router(users_router, prefix="/users", tags=["Users"])
router.include_router(issues_router, prefix="/issues", tags=["Issues"])
router.include_router(admin_router, prefix="/admin", tags=["Admin"])
router.include_router(navigation_router, prefix="/navigation", tags=["Navigation"])
