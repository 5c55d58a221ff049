"""FastAPI application entry point."""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import config
from routes import webhook, health
from platforms.exceptions import (
    AuthenticationFailed, MalformedPayload, NotConfigured, UpstreamFetchFailed
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="chatrelay",
    description="Chat platform webhook drivers",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handlers
@app.exception_handler(MalformedPayload)
async def malformed_payload_handler(request: Request, exc: MalformedPayload):
    return JSONResponse(status_code=400, content={"error": "Malformed payload", "detail": str(exc)})


@app.exception_handler(AuthenticationFailed)
async def authentication_failed_handler(request: Request, exc: AuthenticationFailed):
    return JSONResponse(status_code=401, content={"error": "Authentication failed", "detail": str(exc)})


@app.exception_handler(NotConfigured)
async def not_configured_handler(request: Request, exc: NotConfigured):
    logger.warning(f"Driver not configured: {exc}")
    return JSONResponse(status_code=503, content={"error": "Driver not configured"})


@app.exception_handler(UpstreamFetchFailed)
async def upstream_failed_handler(request: Request, exc: UpstreamFetchFailed):
    logger.error(f"Platform API call failed: {exc}")
    return JSONResponse(status_code=502, content={"error": "Platform API call failed"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    # In production, hide error details
    if config.ENVIRONMENT.lower() == "production":
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)}
    )


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(webhook.router, tags=["webhooks"])


if __name__ == "__main__":
    import uvicorn
    import os
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
