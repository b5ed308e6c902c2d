"""FastAPI application - reference itinerary service for the timeline."""

from fastapi import FastAPI

from route_timeline.api.routes.conflicts import router as conflicts_router
from route_timeline.api.routes.health import router as health_router
from route_timeline.api.routes.itinerary import router as itinerary_router
from route_timeline.api.routes.legs import router as legs_router
from route_timeline.api.routes.metrics import router as metrics_router

app = FastAPI(title="Route Timeline API", version="0.1.0")

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(itinerary_router, tags=["itinerary"])
app.include_router(legs_router, tags=["legs"])
app.include_router(conflicts_router, tags=["conflicts"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Route Timeline API", "version": "0.1.0"}
