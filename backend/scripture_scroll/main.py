"""Scripture Scroll Server - Entry point.

Runs the MCP server and a small JSON API for front-ends over HTTP.
Uses Starlette with the MCP HTTP app for maximum compatibility.
"""

import contextlib
import logging
import os

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from .core import confirmations
from .core.errors import ValidationError
from .shell.mcp_server import close_session, get_session, mcp


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ==================== Helpers ====================


async def _json_body(request: Request) -> dict:
    """Parse the request body, treating an empty or invalid body as {}."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _confirmation_response(action: str, **context: str) -> JSONResponse:
    prompt = confirmations.confirmation_prompt(action, **context)
    return JSONResponse(
        {"confirmation_required": True, **prompt.model_dump()},
        status_code=409,
    )


def _status_response() -> JSONResponse:
    return JSONResponse(get_session().status().model_dump())


# ==================== Route Handlers ====================


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({"status": "healthy", "service": "scripture-scroll"})


async def today(request: Request) -> JSONResponse:
    """Current counter state."""
    return _status_response()


async def increment(request: Request) -> JSONResponse:
    get_session().increment()
    return _status_response()


async def decrement(request: Request) -> JSONResponse:
    get_session().decrement()
    return _status_response()


async def reset_today(request: Request) -> JSONResponse:
    """Save today to history and zero the count. Requires confirmation."""
    body = await _json_body(request)
    if body.get("confirm") is not True:
        return _confirmation_response(confirmations.RESET_TODAY)

    session = get_session()
    entry = session.reset_today()
    return JSONResponse({"saved": entry.model_dump(), "today": session.status().model_dump()})


async def reset_all_time(request: Request) -> JSONResponse:
    body = await _json_body(request)
    if body.get("confirm") is not True:
        return _confirmation_response(confirmations.RESET_ALL_TIME)

    get_session().reset_all_time()
    return _status_response()


async def set_goal(request: Request) -> JSONResponse:
    """Set today's goal from {"goal": <non-negative integer>}."""
    body = await _json_body(request)
    try:
        get_session().set_goal(body.get("goal"))
    except ValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    return _status_response()


async def history(request: Request) -> JSONResponse:
    """Commit today's progress and return the ledger with statistics."""
    return JSONResponse(get_session().view_history().model_dump())


async def clear_history(request: Request) -> JSONResponse:
    body = await _json_body(request)
    if body.get("confirm") is not True:
        return _confirmation_response(confirmations.CLEAR_HISTORY)

    get_session().clear_history()
    return JSONResponse({"success": True})


async def delete_history_entry(request: Request) -> JSONResponse:
    date_str = request.path_params["date"]
    body = await _json_body(request)
    if body.get("confirm") is not True:
        return _confirmation_response(confirmations.DELETE_HISTORY_ENTRY, date=date_str)

    session = get_session()
    try:
        deleted = session.delete_history_entry(date_str)
    except ValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    return JSONResponse({"deleted": deleted, "history": session.history_view().model_dump()})


async def start_auto(request: Request) -> JSONResponse:
    """Start auto-increment from {"interval_ms": <non-negative integer>}."""
    body = await _json_body(request)
    try:
        effective = get_session().start_auto_increment(body.get("interval_ms"))
    except ValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    return JSONResponse({"active": True, "interval_ms": effective})


async def stop_auto(request: Request) -> JSONResponse:
    stopped = get_session().stop_auto_increment()
    return JSONResponse({"active": False, "stopped": stopped})


async def set_theme(request: Request) -> JSONResponse:
    body = await _json_body(request)
    try:
        theme = get_session().set_theme_color(body.get("color"))
    except ValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    return JSONResponse({"theme_color": theme})


# ==================== Create ASGI App ====================


def create_app() -> Starlette:
    """Create the Starlette application with MCP at root.

    The MCP streamable_http_app() handles /mcp/ internally when mounted at root.
    Its lifespan is wrapped so the session is closed on shutdown.
    """
    mcp_app = mcp.streamable_http_app()

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        async with mcp_app.router.lifespan_context(app):
            try:
                yield
            finally:
                close_session()

    routes = [
        Route("/health", health_check, methods=["GET"]),
        Route("/api/today", today, methods=["GET"]),
        Route("/api/increment", increment, methods=["POST"]),
        Route("/api/decrement", decrement, methods=["POST"]),
        Route("/api/reset-today", reset_today, methods=["POST"]),
        Route("/api/reset-all-time", reset_all_time, methods=["POST"]),
        Route("/api/goal", set_goal, methods=["PUT"]),
        Route("/api/history", history, methods=["GET"]),
        Route("/api/history", clear_history, methods=["DELETE"]),
        Route("/api/history/{date}", delete_history_entry, methods=["DELETE"]),
        Route("/api/auto/start", start_auto, methods=["POST"]),
        Route("/api/auto/stop", stop_auto, methods=["POST"]),
        Route("/api/theme", set_theme, methods=["PUT"]),
        # Mount MCP app at root - it handles /mcp/ path internally
        Mount("/", app=mcp_app),
    ]

    cors_origins = [
        o.strip()
        for o in os.environ.get("CORS_ORIGINS", "http://localhost:5173").split(",")
        if o.strip()
    ]

    return Starlette(
        routes=routes,
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=cors_origins,
                allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
                allow_headers=["*"],
            ),
        ],
        lifespan=lifespan,
    )


# Create app at module level for uvicorn
app = create_app()


def main() -> None:
    """Run the server."""
    port = int(os.environ.get("PORT", 8080))
    host = os.environ.get("HOST", "127.0.0.1")

    logger.info("Starting Scripture Scroll server on %s:%d", host, port)

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
