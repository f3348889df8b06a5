"""FastAPI application entry point for the Houses BC API."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from houses_bc.app.config import get_settings
from houses_bc.app.handlers import install_handlers
from houses_bc.infra.database import init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: initialize database on startup."""
    await init_db()
    logger.info("Database ready")
    yield


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.debug else logging.WARNING,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

app = FastAPI(
    title="Houses BC API",
    lifespan=lifespan,
    debug=settings.debug,
)

# Any origin in debug mode
_cors_origins = settings.cors_origins_list
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

install_handlers(app)

# ---------------------------------------------------------------------------
# Route includes
# ---------------------------------------------------------------------------
from houses_bc.app.routes.auth import router as auth_router
from houses_bc.app.routes.quiz import router as quiz_router
from houses_bc.app.routes.progress import router as progress_router
from houses_bc.app.routes.rates import router as rates_router
from houses_bc.app.routes.calculators import router as calculators_router
from houses_bc.app.routes.offers import router as offers_router
from houses_bc.app.routes.appointments import router as appointments_router
from houses_bc.app.routes.leads import router as leads_router
from houses_bc.app.routes.analytics import router as analytics_router
from houses_bc.app.routes.admin import router as admin_router
from houses_bc.app.routes.chatbot import router as chatbot_router
from houses_bc.app.routes.properties import router as properties_router, neighborhoods_router
from houses_bc.app.routes.privacy import router as privacy_router

app.include_router(auth_router)
app.include_router(quiz_router)
app.include_router(progress_router)
app.include_router(rates_router)
app.include_router(calculators_router)
app.include_router(offers_router)
app.include_router(appointments_router)
app.include_router(leads_router)
app.include_router(analytics_router)
app.include_router(admin_router)
app.include_router(chatbot_router)
app.include_router(properties_router)
app.include_router(neighborhoods_router)
app.include_router(privacy_router)


@app.get("/health", tags=["health"])
async def health_check():
    """Return service health status."""
    return {"status": "ok", "service": "houses-bc"}


def run() -> None:
    """Run the application with uvicorn (used by project.scripts entry point)."""
    uvicorn.run(
        "houses_bc.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
