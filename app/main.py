from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from app.database.database import engine, Base

# Import error handlers
from app.common.exceptions import install_error_handlers

# Import routers
from app.modules.products.router import product_router
from app.modules.clients.router import router as clients_router
from app.modules.pos.routers import (
    tabs_router,
    orders_router,
    pos_router,
    cash_registers_router,
    cash_movements_router
)

# Import models for table creation
import app.modules.products.models
import app.modules.clients.models
import app.modules.pos.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="POS Settlement API",
    description="Point-of-sale order capture, pricing, tare and settlement API built with FastAPI and PostgreSQL",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Domain errors -> HTTP responses
install_error_handlers(app)

# Include routers
app.include_router(product_router)
app.include_router(clients_router)
app.include_router(tabs_router)
app.include_router(orders_router)
app.include_router(pos_router)
app.include_router(cash_registers_router)
app.include_router(cash_movements_router)

# Create database tables (only for development - no migrations)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=engine)

@app.get("/")
async def read_root():
    return {
        "message": "POS Settlement API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}

@app.on_event("startup")
async def startup_event():
    logger.info("POS Settlement API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"Max open tabs per cashier: {settings.MAX_OPEN_TABS}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("POS Settlement API shutting down...")
