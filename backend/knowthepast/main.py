import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from knowthepast.core.config import settings, validate_credentials
from knowthepast.core.errors import ConfigurationError
from knowthepast.core.logger import logs
from knowthepast.routes.places_route import router as places_router
from knowthepast.routes.story_route import router as story_router
from knowthepast.routes.map_route import router as map_router

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Missing credentials are fatal at startup
    validate_credentials(settings)
    logs.log(logging.INFO, "Know the Past backend started")
    yield

app = FastAPI(title="Know the Past", lifespan=lifespan)
app.include_router(places_router)
app.include_router(story_router)
app.include_router(map_router)

@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logs.log(logging.CRITICAL, str(exc))
    return JSONResponse(status_code=503, content={"detail": str(exc)})

# --- Root Endpoint ---
@app.get("/")
async def root():
    return {
        "message": "Welcome to Know the Past API",
        "status": "running",
        "endpoints": {
            "health": "/health",
            "categories": "/categories",
            "discover": "/places/discover",
            "story": "/story",
            "render": "/images/render",
            "map": "/map/view",
            "docs": "/docs"
        },
        "version": "1.0.0"
    }

# --- Health Check ---
@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "Know the Past"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("knowthepast.main:app", host="0.0.0.0", port=8000, reload=True)
