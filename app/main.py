"""Main FastAPI application."""

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app import __version__
from app.api.endpoints import router
from app.config import get_settings
from app.utils.logging import LogConfig, setup_logging

setup_logging(LogConfig(level=get_settings().log_level))

# Create FastAPI application
app = FastAPI(
    title="Tool Confirmation Chat Agent",
    description=(
        "A chat agent that streams model replies and runs tools, asking the user "
        "to approve sensitive tool calls before they execute."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    tags_metadata=[
        {
            "name": "Chat",
            "description": "Stream agent replies and resolve approved or denied tool calls.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def not_found_handler(request: Request, exc: StarletteHTTPException):
    """Unknown routes get a plain-text 404."""
    if exc.status_code == 404 and exc.detail == "Not Found":
        return PlainTextResponse("Not found", status_code=404)
    return await http_exception_handler(request, exc)


# Include routers
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
