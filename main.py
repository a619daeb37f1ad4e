"""
DivvyUp Ledger API - Main Application
FastAPI application for turning receipt text into a split bill

Run with: python main.py
Access API docs at: http://localhost:8000/docs
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from api.models import HealthResponse
from api.routes import router, state
from utils import setup_logging

# Create FastAPI app
app = FastAPI(
    title="DivvyUp Ledger API",
    description="Extract line items from receipt text and split the bill between participants",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "DivvyUp Ledger API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    return HealthResponse()


if __name__ == "__main__":
    import uvicorn

    log_cfg = state.config.get('logging', {})
    setup_logging(log_cfg.get('file', 'logs/divvy.log'), log_cfg.get('level', 'INFO'))

    print("=" * 60)
    print("DivvyUp Ledger API")
    print("=" * 60)
    print("Docs: http://localhost:8000/docs")
    print(f"Storage backend: {state.config.get('storage', {}).get('backend', 'json')}")
    print("=" * 60)
    print()

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
