import logging
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from app.api.exception_handlers import register_exception_handlers
from app.api.v1.router import api_router
from app.core.config import settings
from app.db.base import engine

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
for _noisy in ("httpcore", "httpx", "aiosmtplib"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    if not settings.smtp_configured:
        logger.warning("SMTP is not configured: verification and reset emails will not be sent")
    if not settings.google_client_id:
        logger.warning("GOOGLE_CLIENT_ID is not set: Google ID tokens will be rejected")
    yield
    await engine.dispose()


def _frontend_origin() -> str | None:
    if not settings.frontend_url:
        return None
    parsed = urlparse(settings.frontend_url)
    return f"{parsed.scheme}://{parsed.netloc}"


app = FastAPI(title=settings.app_name, lifespan=lifespan)

if origin := _frontend_origin():
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

register_exception_handlers(app)
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
def health():
    return {"status": "ok"}
