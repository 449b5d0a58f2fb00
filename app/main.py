import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import ConfigurationError
from app.api.v1.endpoints.sentiment import router as sentiment_router
from app.services.llm_service import MISSING_KEY_MESSAGE, configured_api_key

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    if settings.openai_api_key:
        logger.info(f"✅ Model proxy ready (model: {settings.llm_model})")
    else:
        logger.warning("⚠️ OPENAI_API_KEY is not set - every analysis request will fail")

    yield

    logger.info("Proxy shutting down")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # A missing key is reported for every request, even one whose body is invalid.
    if not configured_api_key():
        logger.error(f"Configuration error: {MISSING_KEY_MESSAGE}")
        return JSONResponse(status_code=500, content={"error": MISSING_KEY_MESSAGE})

    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request body.") if errors else "Invalid request body."
    logger.warning(f"Rejected request body: {message}")
    return JSONResponse(status_code=400, content={"error": message})


app.include_router(sentiment_router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "ok"}
