import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware

from portfolio_api.core.config import get_settings
from portfolio_api.core.context import ServiceContext, get_context, service_context
from portfolio_api.core.errors import register_exception_handlers
from portfolio_api.core.middleware import RateLimitMiddleware
from portfolio_api.api.routes import router as api_router

from prometheus_fastapi_instrumentator import Instrumentator
from portfolio_api.core.logging_config import setup_logging, get_logger

settings = get_settings()

# Setup Structured Logging
setup_logging(settings.LOG_LEVEL)
logger = get_logger("main")

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("startup_event", project=settings.PROJECT_NAME)
    await service_context.startup()
    try:
        yield
    finally:
        await service_context.shutdown()

app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)
if settings.RATE_LIMIT_ENABLED:
    app.add_middleware(
        RateLimitMiddleware,
        limit=settings.RATE_LIMIT_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        trust_forwarded_for=settings.TRUST_FORWARDED_FOR,
    )

register_exception_handlers(app)

# Instrument Prometheus
Instrumentator().instrument(app).expose(app)

@app.get("/health")
async def health_check(context: ServiceContext = Depends(get_context)):
    start_time = time.time()
    expired = context.cache.cleanup()
    latency = (time.time() - start_time) * 1000

    return {
        "status": "ok",
        "environment": context.settings.ENVIRONMENT,
        "reporting_currency": context.settings.REPORTING_CURRENCY,
        "cache_entries": context.cache.size(),
        "cache_expired_removed": expired,
        "latency_ms": round(latency, 2)
    }

app.include_router(api_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("portfolio_api.main:app", host="0.0.0.0", port=8000)
