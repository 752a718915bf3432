"""
ClaimCraft Engine - FastAPI Application

Main entry point for the ClaimCraft Engine backend.

Architecture:
- ClaimState → InterestCalculator → InterestResult
- ClaimState + InterestResult → DocumentRecommender → Recommendation
- ClaimState → DeadlineEngine → Deadline[] (persisted)
- ClaimState + InterestResult + Deadline[] → DocumentGenerator → GeneratedDocument
- GeneratedDocument → N1FormFiller → PDF
"""
import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import claims_router, deadlines_router
from .database import init_db

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="ClaimCraft Engine",
    description="""
    ClaimCraft Engine - UK Debt Recovery Rules and Documents

    Computes statutory late-payment interest, recommends the next
    pre-action document, schedules procedural deadlines and produces
    reminders, Letters Before Action and a completed Form N1.

    ## Key Principles
    - Claim snapshots are immutable; every rule is a pure function of its inputs
    - Interest uses decimal arithmetic and is rounded once, at the end
    - Documents are regenerated only when the fields they depend on change
    - Scheduling deadlines twice leaves the same set
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(claims_router)
app.include_router(deadlines_router)


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "ClaimCraft Engine",
        "version": "1.0.0",
        "description": "UK debt recovery rules and document engine",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


# For running with: python -m app.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
