"""Route handlers for the reporting gateway."""

from fastapi import APIRouter

from reporting_gateway.routes import reporting

# Create main router
router = APIRouter()

router.include_router(reporting.router, prefix="/reporting", tags=["Reporting"])
