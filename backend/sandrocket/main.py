"""
Sand Rocket - multi-tenant project, epic and task Kanban tracker.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from sandrocket.config import get_settings
from sandrocket.database import init_db
from sandrocket.exceptions import NotFoundError, register_exception_handlers
from sandrocket.logging_config import get_logger, setup_logging
from sandrocket.routes import auth, documents, epics, invitations, projects, tasks

# Initialize logging
setup_logging()
logger = get_logger(__name__)

settings = get_settings()

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logger.info("Starting Sand Rocket API...")
    await init_db()
    logger.info("Database initialized")
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Storing documents under {settings.upload_dir}")
    yield
    logger.info("Shutting down Sand Rocket API...")


app = FastAPI(
    title="Sand Rocket",
    description="Kanban tracker for projects, epics and tasks",
    version="0.1.0",
    lifespan=lifespan,
)

# Register custom exception handlers
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowlist,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with its status and duration; keep crawlers out."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000

    response.headers["X-Robots-Tag"] = "noindex, nofollow, noarchive, nosnippet, noimageindex"
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f}ms)")
    return response


# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(projects.router, prefix="/api/projects", tags=["Projects"])
app.include_router(invitations.router, prefix="/api", tags=["Invitations"])
app.include_router(epics.router, prefix="/api", tags=["Epics"])
app.include_router(tasks.router, prefix="/api", tags=["Tasks"])
app.include_router(documents.router, prefix="/api", tags=["Documents"])


@app.get("/healthz")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


frontend_dir = settings.frontend_dist_dir
if frontend_dir is not None and (frontend_dir / "index.html").exists():
    logger.info(f"Serving frontend bundle from {frontend_dir}")

    if (frontend_dir / "assets").is_dir():
        app.mount("/assets", StaticFiles(directory=frontend_dir / "assets"), name="assets")

    @app.get("/{full_path:path}", include_in_schema=False)
    async def serve_frontend(full_path: str) -> FileResponse:
        """Serve static files from the bundle; every other path gets index.html."""
        if full_path.startswith("api/"):
            raise NotFoundError("Route", f"/{full_path}")

        candidate = (frontend_dir / full_path).resolve()
        if full_path and candidate.is_file() and candidate.is_relative_to(frontend_dir.resolve()):
            return FileResponse(candidate)
        return FileResponse(frontend_dir / "index.html", headers=NO_CACHE_HEADERS)
elif frontend_dir is not None:
    logger.warning(f"Frontend bundle not found in {frontend_dir}; serving the API only")


def run_server():
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "sandrocket.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    run_server()
