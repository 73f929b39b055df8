import logging
from urllib.parse import quote
from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from .config import settings
from .database import create_tables
from .errors import LinkError, InvalidCode, NotFound
from .api import links
from .api.links import get_link_service, as_http_error
from .services.links import LinkService
from .observability import PrometheusMiddleware, metrics_endpoint, REDIRECT_TOTAL, REDIRECT_404_TOTAL
from .logging_config import setup_logging

VERSION = "1.0.0"

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.CREATE_TABLES:
        logger.info("Creating database tables")
        await create_tables()
    yield

app = FastAPI(
    title="TinyLink",
    description="A small URL shortener with click analytics",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(PrometheusMiddleware)

app.add_route("/metrics", metrics_endpoint)

app.include_router(links.router)

@app.exception_handler(RequestValidationError)
async def invalid_body_handler(request: Request, exc: RequestValidationError):
    # Only PUT /links takes a body; a body that is not a JSON object is a bad request
    return JSONResponse(status_code=400, content={"detail": "Invalid request body"})

@app.get("/health")
async def health():
    return {"status": "ok", "version": VERSION}


def raw_path_segment(request: Request, fallback: str) -> str:
    # The path as sent, before Starlette percent-decodes it
    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return quote(fallback, safe="")
    path = raw_path.decode("latin-1").split("?", 1)[0]
    root_path = request.scope.get("root_path", "")
    if root_path and path.startswith(root_path):
        path = path[len(root_path):]
    return path.lstrip("/")


@app.get("/{code}")
async def redirect_to_url(
    code: str,
    request: Request,
    service: LinkService = Depends(get_link_service)
):
    try:
        target_url = await service.resolve_redirect(raw_path_segment(request, code))
    except (InvalidCode, NotFound):
        # Malformed and unknown codes look the same from outside
        REDIRECT_404_TOTAL.inc()
        raise HTTPException(status_code=404, detail="Short link not found")
    except LinkError as exc:
        raise as_http_error(exc)

    REDIRECT_TOTAL.inc()
    return RedirectResponse(url=target_url, status_code=302)
