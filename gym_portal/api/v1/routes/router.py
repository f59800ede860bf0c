# Main Router - gym_portal/api/v1/routes/router.py
from fastapi import APIRouter
from gym_portal.api.v1.routes.registration.registration import router as registration_router
from gym_portal.api.v1.routes.renewal.renewal import router as renewal_router
from gym_portal.api.v1.routes.payments.payments import router as payments_router
from gym_portal.api.v1.routes.auth.auth import router as auth_router
from gym_portal.api.v1.routes.admin.admin import router as admin_router

router = APIRouter()

# Public member routes
router.include_router(registration_router)
router.include_router(renewal_router)
router.include_router(payments_router)

# Admin routes (bearer token forwarded to the backend)
router.include_router(auth_router)
router.include_router(admin_router)
