"""Main FastAPI application entry point."""

import logging
from typing import Optional

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from ai_gateway.database.database import init_db, get_db
from ai_gateway.api.chat import router as chat_router
from ai_gateway.api.configurations import router as configurations_router
from ai_gateway.services.credential_vault import CredentialVault

logger = logging.getLogger(__name__)

app = FastAPI(
    title="AI Provider Gateway",
    description="Tenant-scoped access to third-party LLM providers with encrypted credentials",
    version="0.1.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(chat_router)
app.include_router(configurations_router)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    encryption: str
    message: Optional[str] = None


@app.on_event("startup")
async def startup_event():
    """Initialize database and validate the vault on startup."""
    # Validate vault passphrase (will exit if missing)
    CredentialVault()
    init_db()


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "AI Provider Gateway API", "version": "0.1.0"}


@app.get("/api/health", response_model=HealthResponse)
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint.

    Checks database connectivity and that the vault can round-trip a value.
    """
    health_status = {
        "status": "healthy",
        "database": "connected",
        "encryption": "valid",
    }

    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database failure: {e}")
        health_status["status"] = "unhealthy"
        health_status["database"] = "disconnected"
        health_status["message"] = str(e)
        return HealthResponse(**health_status)

    vault = CredentialVault()
    if vault.decrypt(vault.encrypt("health-check")) != "health-check":
        health_status["encryption"] = "invalid"
        health_status["status"] = "unhealthy"
        health_status["message"] = "Credential vault validation failed"

    return HealthResponse(**health_status)
