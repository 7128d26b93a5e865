import logging
from typing import Optional
from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import RedirectResponse
from supabase import Client
from tutorhub.core.config import settings
from tutorhub.core.dependencies import AuthRedirect, get_optional_principal, login_redirect_url, role_home
from tutorhub.db.supabase import get_supabase
from tutorhub.modules.auth.router import router as auth_router
from tutorhub.modules.profiles.router import router as profiles_router
from tutorhub.modules.sessions.router import router as sessions_router
from tutorhub.modules.assessments.router import router as assessments_router
from tutorhub.modules.messages.router import router as messages_router
from tutorhub.modules.student.router import router as student_router
from tutorhub.modules.teacher.router import router as teacher_router
from tutorhub.modules.earnings.router import router as earnings_router
from tutorhub.modules.availability.router import router as availability_router
from tutorhub.modules.admin.router import router as admin_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="TutorHub Backend",
    description="Scheduling and messaging portal for an online tutoring school",
    version="1.0.0"
)

PUBLIC_PATHS = ["/", "/health", "/login"]


# Custom OpenAPI schema so Swagger UI can send the Supabase access token
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    if "components" not in openapi_schema:
        openapi_schema["components"] = {}
    openapi_schema["components"]["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT"
        }
    }

    for path, path_item in openapi_schema.get("paths", {}).items():
        for method, operation in path_item.items():
            if path in PUBLIC_PATHS or path in ("/auth/login", "/auth/signup"):
                continue
            operation["security"] = [{"BearerAuth": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuthRedirect)
async def handle_auth_redirect(request: Request, exc: AuthRedirect):
    return RedirectResponse(url=exc.location, status_code=303)


@app.get("/")
def root():
    return {"message": "TutorHub backend"}


@app.get("/health")
def health_check(client: Client = Depends(get_supabase)):
    """Check if the service and database connection are healthy"""
    try:
        client.table("profiles").select("id").limit(1).execute()
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        logger.error("Health check failed: %s", e)
        return {"status": "unhealthy", "database": f"error: {str(e)}"}


@app.get("/login")
def login_entry(next: Optional[str] = None):
    """Login entry point. `next` is the view to resume after signing in."""
    return {"message": "Login required", "login_endpoint": "/auth/login", "next": next}


@app.get("/dashboard")
def dashboard(request: Request, principal: Optional[dict] = Depends(get_optional_principal)):
    """Send the caller to their role's home view."""
    if principal is None:
        return RedirectResponse(url=login_redirect_url(request.url.path), status_code=303)
    return RedirectResponse(url=role_home(principal["role"]), status_code=303)


# Include routers
app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(profiles_router, prefix="/profiles", tags=["Profiles"])
app.include_router(sessions_router, prefix="/sessions", tags=["Sessions"])
app.include_router(assessments_router, prefix="/assessments", tags=["Assessments"])
app.include_router(messages_router, prefix="/messages", tags=["Messages"])
app.include_router(student_router, prefix="/student", tags=["Student"])
app.include_router(teacher_router, prefix="/teacher", tags=["Teacher"])
app.include_router(earnings_router, prefix="/teacher", tags=["Earnings"])
app.include_router(availability_router, prefix="/teacher", tags=["Availability"])
app.include_router(admin_router, prefix="/admin", tags=["Admin"])
