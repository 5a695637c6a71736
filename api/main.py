"""
FastAPI application for the Clinical Analyzer.

GOVERNANCE:
- Generated diagnoses and reports are for medical education only
- Every report is reviewed by an instructor
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import (
    chat_router,
    region_router,
    report_router,
    review_router,
    session_router,
)
from config import get_settings
from logging_config import setup_logging
from workflow.errors import WorkflowError

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    yield


app = FastAPI(
    title="Clinical Analyzer API",
    description="Learner clinical-analysis workflow with instructor review",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware for the Streamlit consoles
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict to specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    """Translate workflow errors into JSON bodies with their status code."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include routers
app.include_router(region_router)
app.include_router(session_router)
app.include_router(chat_router)
app.include_router(report_router)
app.include_router(review_router)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "clinical_analyzer"}


@app.get("/")
def root():
    """Root endpoint with API info."""
    return {
        "service": "Clinical Analyzer API",
        "version": "1.0.0",
        "governance": "Educational use only; every report is instructor-reviewed",
        "endpoints": {
            "regions": "/v1/regions",
            "workflows": "/v1/workflows",
            "chat": "/v1/chat",
            "reports": "/v1/reports",
            "review": "/v1/review",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
    )
