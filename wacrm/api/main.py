"""
FastAPI app assembly: logging, middleware and router wiring.
Includes the identity endpoint shared by every frontend page.
"""
import logging
import os
from typing import List

from fastapi import APIRouter, Depends, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)

from wacrm.api.deps import get_current_user_context
from wacrm.api.companies import router as companies_router
from wacrm.api.broadcast_groups import router as broadcast_groups_router
from wacrm.api.hashtags import router as hashtags_router
from wacrm.api.contacts import router as contacts_router
from wacrm.api.broadcast import router as broadcast_router
from wacrm.api.api_providers import router as api_providers_router
from wacrm.api.ai import router as ai_router
from wacrm.api.eforms import router as eforms_router
from wacrm.api.workflows import router as workflows_router
from wacrm.api.workflow_executions import router as workflow_executions_router
from wacrm.api.datasets import router as datasets_router
from wacrm.api.reports import router as reports_router
from wacrm.api.audits import router as audits_router
from wacrm.db import schemas
from wacrm.utils.feature_flags import get_feature_flags
from wacrm.utils.runtime import dev_mode_active

SERVICE_NAME = "whatsflow-service"

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="WhatsFlow CRM Service",
    description="API for WhatsApp contact lists, broadcasts, API providers, e-forms, workflows and reports.",
    version="1.0.0",
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False

DEFAULT_ORIGINS = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8000",
]


def cors_origins() -> List[str]:
    extra = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
    return DEFAULT_ORIGINS + [o for o in extra if o not in DEFAULT_ORIGINS]


app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Middleware: enforce read-only for unauthenticated requests
@app.middleware("http")
async def enforce_readonly_for_guests(request: Request, call_next):
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        try:
            is_dev_mode = dev_mode_active()
        except RuntimeError as exc:
            logger.error("DEV_MODE misconfiguration detected: %s", exc)
            return JSONResponse({"detail": "DEV_MODE misconfigured"}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
        if not is_dev_mode:
            h = request.headers
            user_present = (
                h.get("x-auth-request-user")
                or h.get("x-auth-request-email")
                or h.get("x-forwarded-user")
                or h.get("x-forwarded-email")
            )
            if not user_present:
                return JSONResponse(
                    {"detail": "Guest mode is read-only. Sign in to perform changes."},
                    status_code=status.HTTP_401_UNAUTHORIZED,
                )
    return await call_next(request)


router = APIRouter()


@router.get("/user-info", response_model=schemas.UserInfo)
def get_user_info(user_context=Depends(get_current_user_context)):
    """
    Return the authenticated user and company memberships.
    - Dev mode (DEV_MODE=true): the stable dev user.
    - Normal mode: the user named by the oauth2-proxy headers.
    """
    user, current_user = user_context
    flags = get_feature_flags()
    return {
        "authenticated": True,
        "user_id": str(user.id),
        "email": user.email,
        "display_name": user.display_name,
        "is_superadmin": bool(user.is_superadmin),
        "last_seen_at": user.last_seen_at,
        "memberships": current_user["memberships"],
        "ai_features_enabled": flags["ai_features_enabled"],
        "realtime_reports_enabled": flags["realtime_reports_enabled"],
    }


@router.get("/health")
def health_check():
    return {"status": "ok", "service": SERVICE_NAME}


app.include_router(router)
app.include_router(companies_router)
# Group and hashtag routes live under /contactlist and must match before /contactlist/{contact_id}
app.include_router(broadcast_groups_router)
app.include_router(hashtags_router)
app.include_router(contacts_router)
app.include_router(broadcast_router)
app.include_router(api_providers_router)
app.include_router(ai_router)
app.include_router(eforms_router)
app.include_router(workflows_router)
app.include_router(workflow_executions_router)
app.include_router(datasets_router)
app.include_router(reports_router)
app.include_router(audits_router)
