"""
API v1 router aggregator.

All v1 routes are registered here.
"""

from fastapi import APIRouter

from opsportal.features.portal.router import router as portal_router
from opsportal.features.rbac.router import router as access_router
from opsportal.features.session.router import router as session_router
from opsportal.features.tenants.router import router as tenants_router

v1_router = APIRouter(prefix="/v1")

v1_router.include_router(tenants_router)
v1_router.include_router(session_router)
v1_router.include_router(access_router)
v1_router.include_router(portal_router)
