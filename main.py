from contextlib import asynccontextmanager
import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from framework.config import settings
from framework.database.manager import DatabaseManager
from framework.middleware.logging_md import LoggingMiddleware
from framework.logging.logger import LogConfig, get_logger
from framework.exceptions.handler import BusinessException, global_exception_handler
from apps.banking.api.router import router as banking_router

# Initialize logging configuration
LogConfig.setup_logging()
logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    manager = DatabaseManager.get_instance()
    await manager.sql.connect()
    if settings.APP_ENV == "development":
        # Local runs create tables directly; deployments run Alembic
        await manager.sql.create_tables()
    logger.info(f"{settings.APP_NAME} started ({settings.APP_ENV})")
    yield
    await manager.shutdown()
    logger.info(f"{settings.APP_NAME} stopped")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Register global exception handlers
app.add_exception_handler(BusinessException, global_exception_handler)
app.add_exception_handler(RequestValidationError, global_exception_handler)
app.add_exception_handler(httpx.HTTPError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(LoggingMiddleware)

# Mount routers (prefix from config for easy override in private projects)
app.include_router(
    banking_router,
    prefix=settings.API_V1_BANKING_PREFIX,
    tags=["Banking"]
)


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
