import movienight.db.base  # noqa: F401

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi_mcp import FastApiMCP

from movienight.core.config import settings
from movienight.api.routes.health import router as health_router
from movienight.api.routes.catalog import router as catalog_router
from movienight.api.routes.library import router as library_router
from movienight.api.routes.cycles import router as cycles_router
from movienight.api.routes.calculators import router as calculators_router
from movienight.api.routes.presence import router as presence_router


logger = logging.getLogger(__name__)
app = FastAPI(title="Movie Night API", version="0.1.0")

local_cors_origin_regex = (
    r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"
    if settings.env in {"local", "test"}
    else None
)

@app.exception_handler(Exception)
async def debug_exception_handler(request: Request, exc: Exception):
    if settings.env in {"local", "test"}:
        return PlainTextResponse(
            "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            status_code=500,
        )
    logger.exception("Unhandled exception for %s %s", request.method, request.url.path)
    return PlainTextResponse("Internal Server Error", status_code=500)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list(),
    allow_origin_regex=local_cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(catalog_router)
app.include_router(library_router)
app.include_router(cycles_router)
app.include_router(calculators_router)
app.include_router(presence_router)

mcp = FastApiMCP(app)
mcp.mount_http()
