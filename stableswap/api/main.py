"""FastAPI application for the stableswap engine.

Note: Authentication is not implemented at the application level. The
account named in a request body is trusted as the caller.
"""

import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stableswap import __version__
from stableswap.api.endpoints import error_status, router
from stableswap.errors import StableswapError
from stableswap.log import configure_logging

logger = structlog.get_logger()

# Server settings, overridable through the environment
HOST = os.environ.get("STABLESWAP_HOST", "0.0.0.0")
PORT = int(os.environ.get("STABLESWAP_PORT", "8000"))
DEBUG = os.environ.get("STABLESWAP_DEBUG", "false").lower() in ("true", "1", "yes")

# Maximum request body size (1 MB)
MAX_REQUEST_SIZE = 1024 * 1024

app = FastAPI(
    title="Stableswap Engine",
    description="Stableswap AMM pools: liquidity, quotes and trades",
    version=__version__,
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Answer 413 when Content-Length exceeds MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


@app.exception_handler(StableswapError)
async def stableswap_error_handler(request: Request, exc: StableswapError) -> JSONResponse:
    """Render engine errors as {"error": code, "detail": message}."""
    status_code = error_status(exc)
    logger.info(
        "request_rejected",
        path=request.url.path,
        status=status_code,
        error=exc.code,
    )
    return JSONResponse(status_code=status_code, content={"error": exc.code, "detail": str(exc)})


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Liveness probe reporting the package version."""
    return {"status": "ok", "version": __version__}


def run() -> None:
    """Run the stableswap API server.

    Configuration via environment variables:
    - STABLESWAP_HOST: Host to bind to (default: 0.0.0.0)
    - STABLESWAP_PORT: Port to bind to (default: 8000)
    - STABLESWAP_DEBUG: Enable debug logging and reload mode (default: false)

    Engine limits are read from the STABLESWAP_* variables documented on
    EngineConfig.from_env.
    """
    configure_logging("DEBUG" if DEBUG else "INFO")
    uvicorn.run(
        "stableswap.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
