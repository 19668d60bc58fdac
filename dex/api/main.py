"""FastAPI application for the exchange.

Note: Authentication and transaction signing are not implemented here. The
`sender` of each request is trusted as given; put the service behind the
component that verifies signatures.
"""

import os

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dex import __version__
from dex.api.endpoints import router
from dex.config import ExchangeConfig
from dex.errors import DexError, InvariantViolation, PairNotFound
from dex.logs import configure_logging
from dex.models.api import ErrorResponse
from dex.safe_int import SafeIntError

logger = structlog.get_logger()

# Configuration from environment variables with sensible defaults
HOST = os.environ.get("DEX_HOST", "0.0.0.0")
PORT = int(os.environ.get("DEX_PORT", "8000"))
DEBUG = os.environ.get("DEX_DEBUG", "false").lower() in ("true", "1", "yes")

# Maximum request body size (1 MB)
MAX_REQUEST_SIZE = 1024 * 1024

app = FastAPI(
    title="DEX Engine",
    description="Constant-product AMM exchange: pairs, liquidity and swaps",
    version=__version__,
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


@app.exception_handler(DexError)
async def dex_error_handler(request: Request, exc: DexError) -> JSONResponse:
    """Rejected operations: 400 with the error name (404 for missing pairs)."""
    status_code = 404 if isinstance(exc, PairNotFound) else 400
    logger.info(
        "request_rejected",
        path=request.url.path,
        error=type(exc).__name__,
        detail=str(exc),
    )
    body = ErrorResponse(error=type(exc).__name__, detail=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(InvariantViolation)
async def invariant_violation_handler(request: Request, exc: InvariantViolation) -> JSONResponse:
    """Engine defects: logged with traceback, reported as 500."""
    logger.exception("invariant_violation", path=request.url.path, exc_info=exc)
    body = ErrorResponse(error="InvariantViolation", detail=str(exc))
    return JSONResponse(status_code=500, content=body.model_dump())


@app.exception_handler(SafeIntError)
async def range_error_handler(request: Request, exc: SafeIntError) -> JSONResponse:
    """Amounts or results outside the uint256 range: rejected with 400."""
    logger.info(
        "request_rejected",
        path=request.url.path,
        error=type(exc).__name__,
        detail=str(exc),
    )
    body = ErrorResponse(error=type(exc).__name__, detail=str(exc))
    return JSONResponse(status_code=400, content=body.model_dump())


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}


def run() -> None:
    """Run the exchange API server.

    Configuration via environment variables:
    - DEX_HOST: Host to bind to (default: 0.0.0.0)
    - DEX_PORT: Port to bind to (default: 8000)
    - DEX_DEBUG: Enable debug/reload mode (default: false)
    - DEX_LOG_LEVEL, DEX_FEE_NUMERATOR, DEX_FEE_DENOMINATOR, DEX_ENABLE_FAUCET:
      see ExchangeConfig.from_env
    """
    configure_logging(ExchangeConfig.from_env().log_level)
    uvicorn.run(
        "dex.api.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
