"""FastAPI application entry point."""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hybridcoach import __version__
from hybridcoach.exceptions import CoachError, ConflictError, PlanningError
from hybridcoach.routers import adaptations, health, injuries, profiles, progress, training_plans


app = FastAPI(title="Hybrid Coach Planning API", version=__version__)


@app.exception_handler(CoachError)
async def coach_error_handler(request: Request, exc: CoachError) -> JSONResponse:
    """Render engine errors as ``{"detail": ...}`` with their status code."""
    content = {"detail": exc.message, "error": type(exc).__name__}
    if isinstance(exc, ConflictError) and exc.retry_guidance:
        content["retry_guidance"] = exc.retry_guidance
    if isinstance(exc, PlanningError):
        content["reason"] = exc.reason
    return JSONResponse(status_code=exc.status_code, content=content)


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Simple health probe for liveness checks."""
    return {"status": "ok"}


# Include routers
app.include_router(health.router)
app.include_router(profiles.router)
app.include_router(training_plans.router)
app.include_router(adaptations.router)
app.include_router(progress.router)
app.include_router(injuries.router)
