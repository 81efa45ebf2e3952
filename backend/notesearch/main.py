from __future__ import annotations
import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ============================================================
# 🪵 Logging Setup
# ============================================================
logging.basicConfig(
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    level=logging.INFO,
)
logger = logging.getLogger("notesearch.app")

# ============================================================
# 📦 Core Imports (Config + Dependency Injection)
# ============================================================
from notesearch.db.config import settings
from notesearch.db.session import DatabasePool
from notesearch.container import build_container

# ============================================================
# 🌐 Routers
# ============================================================
from notesearch.router.health import router as health_router
from notesearch.router.search import router as search_router

# ============================================================
# 🚀 Startup / Shutdown Lifecycle
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the pipeline once; routers read it from app.state."""
    logger.info("🚀 Initializing Meeting Notes Search API...")
    app.state.settings = settings
    app.state.startup_time = time.time()
    app.state.startup_error = None

    try:
        app.state.container = await build_container(settings)
        logger.info("🎯 API is ready and accepting requests")
    except Exception as e:
        logger.error(f"❌ Container init failed: {e}", exc_info=True)
        app.state.startup_error = str(e)
        raise

    try:
        yield
    finally:
        container = getattr(app.state, "container", None)
        embedder = getattr(container, "embedder", None)
        if embedder is not None and hasattr(embedder, "aclose"):
            await embedder.aclose()
        await DatabasePool.close()
        logger.info("🧹 Application shutdown complete")

# ============================================================
# 🌍 FastAPI App Definition
# ============================================================
def create_app(lifespan_handler=lifespan) -> FastAPI:
    app = FastAPI(
        title="Meeting Notes Search API",
        description="Multi-store retrieval with one synthesized, per-source answer",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan_handler,
    )

    # CORS Setup
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Malformed bodies are client errors like any other validation failure
    @app.exception_handler(RequestValidationError)
    async def _validation_error(_: Request, exc: RequestValidationError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": jsonable_encoder(exc.errors())})

    app.include_router(health_router)
    app.include_router(search_router)

    @app.get("/status")
    async def get_app_status(request: Request):
        container = getattr(request.app.state, "container", None)
        return {
            "system_status": "healthy" if container is not None else "initializing",
            "mode": container.mode if container is not None else "unknown",
            "error": getattr(request.app.state, "startup_error", None),
            "uptime_seconds": time.time() - getattr(request.app.state, "startup_time", time.time()),
            "timestamp": time.time(),
        }

    @app.get("/")
    def root():
        return {
            "app": "Meeting Notes Search API",
            "version": "1.0.0",
            "mode": settings.retriever_backend,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "readiness": "/health/ready",
                "status": "/status",
                "stores": "/search/stores",
            },
            "examples": {
                "search": {
                    "method": "POST",
                    "path": "/search/multi-store",
                    "body": {
                        "query": "What did we decide about the launch date?",
                        "storeIds": ["fileSearchStores/acme-kickoff", "fileSearchStores/q1-review"],
                        "perStoreTimeoutMs": settings.per_store_timeout_ms,
                    },
                },
            },
        }

    return app

app = create_app()

# ============================================================
# 🏁 Entrypoint
# ============================================================
if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Meeting Notes Search API on port 8080...")
    uvicorn.run(
        "notesearch.main:app",
        host="0.0.0.0",
        port=8080,
        reload=False,
        log_config=None
    )
