"""
Octree API: LaTeX documents, editor sessions with AI edit suggestions, and compilation.
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from octree.api.routes import api_router
from octree.core.config import settings
from octree.core.database import create_tables
from octree.core.exceptions import (
    generic_exception_handler,
    octree_exception_handler,
    validation_exception_handler,
)
from octree.core.middleware import LoggingMiddleware, SecurityHeadersMiddleware
from octree.services.latex_compiler_service import latex_compiler_service
from octree.services.session_manager import session_manager
from octree.utils.exceptions import OctreeException

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Octree starting")
    await create_tables()

    engines = latex_compiler_service.available_engines()
    if not any(engines.values()):
        logger.warning("Neither tectonic nor pdflatex is on PATH; every compile will fail")
    else:
        logger.info(f"LaTeX engines: {', '.join(name for name, ok in engines.items() if ok)}")

    yield

    # Flush dirty buffers before the process goes away.
    await session_manager.close_all()
    logger.info("Octree stopped")


app = FastAPI(
    title="Octree API",
    description="LaTeX editor backend with AI edit suggestions",
    version=APP_VERSION,
    lifespan=lifespan,
)

# Last added runs first: CORS, then security headers, then request logging.
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(OctreeException, octree_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": APP_VERSION,
        "latex_engines": latex_compiler_service.available_engines(),
        "open_sessions": len(session_manager.list()),
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1 if settings.DEBUG else settings.WORKERS,
    )
