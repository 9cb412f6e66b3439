"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from inventory.api.errors import register_exception_handlers
from inventory.api.products import router as products_router
from inventory.config import get_settings
from inventory.database import Base, engine
from inventory.models import OutboxEvent, Product  # noqa: F401 - Import to register models

settings = get_settings()

handlers = [logging.StreamHandler()]
if settings.log_file:
    handlers.append(logging.FileHandler(settings.log_file))

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=handlers,
)

# Set specific log levels for noisy libraries
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup."""
    Base.metadata.create_all(bind=engine)
    logger.info(f"Inventory service started ({settings.app_env})")
    yield


app = FastAPI(
    title="Product Inventory",
    description="Product catalog and stock management with cached reads and lifecycle events",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(products_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
