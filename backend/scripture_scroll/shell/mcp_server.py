"""MCP Server - Tool definitions mirroring the counter's UI events.

Defines the MCP tools a client can invoke to drive the counter.
Destructive tools require ``confirm=True`` and otherwise return the prompt
the user should see.
"""

import logging
import os
from pathlib import Path

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings

from ..core import confirmations
from ..core.errors import ValidationError
from ..core.models import DEFAULT_THEME_COLOR, MIN_AUTO_INTERVAL_MS
from .firestore_client import FirestoreConfig, FirestoreKeyValueStore
from .session import CounterSession, SessionConfig
from .store import FileStoreConfig, InMemoryStore, JsonFileStore, KeyValueStore


logger = logging.getLogger(__name__)

transport_security = TransportSecuritySettings(
    enable_dns_rebinding_protection=True,
    allowed_hosts=[
        "localhost:*",
        "127.0.0.1:*",
        *[h.strip() for h in os.environ.get("ALLOWED_HOSTS", "").split(",") if h.strip()],
    ],
)

mcp = FastMCP(
    "scripture-scroll",
    instructions="""Scripture Scroll - Mindful practice counter.

Use these tools to count repetitions of a practice, set a daily goal and
review the history of past days.

Call get_today to see the current count and goal.
Tools that reset or delete data need confirm=true; call them without it first
and show the returned prompt to the user.""",
    stateless_http=True,
    transport_security=transport_security,
)

# Lazy-initialized session
_session: CounterSession | None = None


def create_store() -> KeyValueStore:
    """Build the key-value store selected by STORAGE_BACKEND."""
    backend = os.environ.get("STORAGE_BACKEND", "file").lower()
    if backend == "memory":
        return InMemoryStore()
    if backend == "firestore":
        return FirestoreKeyValueStore(
            FirestoreConfig(
                project_id=os.environ.get("FIRESTORE_PROJECT"),
                database=os.environ.get("FIRESTORE_DATABASE"),
                device_id=os.environ.get("DEVICE_ID", "default"),
            )
        )
    if backend == "file":
        return JsonFileStore(
            FileStoreConfig(path=Path(os.environ.get("STORE_PATH", "scripture_scroll.json")))
        )
    raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")


def get_session() -> CounterSession:
    """Get or create the process-wide session, rehydrated from the store."""
    global _session
    if _session is None:
        config = SessionConfig(
            default_theme_color=os.environ.get("DEFAULT_THEME_COLOR", DEFAULT_THEME_COLOR),
            min_auto_interval_ms=int(os.environ.get("AUTO_INCREMENT_MIN_MS", MIN_AUTO_INTERVAL_MS)),
        )
        session = CounterSession(create_store(), config)
        report = session.rehydrate()
        if not report.ok:
            logger.warning("Started with defaults for: %s", ", ".join(sorted(report.failed)))
        _session = session
    return _session


def set_session(session: CounterSession | None) -> None:
    """Replace the process-wide session (None drops it)."""
    global _session
    _session = session


def close_session() -> None:
    """Stop the scheduler and flush pending writes of the current session."""
    global _session
    if _session is not None:
        _session.close()
        _session = None


def _needs_confirmation(action: str, **context: str) -> dict:
    prompt = confirmations.confirmation_prompt(action, **context)
    return {"confirmation_required": True, **prompt.model_dump()}


# ==================== Counter Tools ====================


@mcp.tool()
def get_today() -> dict:
    """Get today's count, goal, progress, all-time count and theme.

    Returns:
        Dictionary with the current counter state
    """
    return get_session().status().model_dump()


@mcp.tool()
def increment() -> dict:
    """Add one to today's count (and the all-time count).

    Returns:
        Updated counter state
    """
    session = get_session()
    session.increment()
    return session.status().model_dump()


@mcp.tool()
def decrement() -> dict:
    """Remove one from today's count. Never goes below zero.

    Returns:
        Updated counter state
    """
    session = get_session()
    session.decrement()
    return session.status().model_dump()


@mcp.tool()
def reset_today(confirm: bool = False) -> dict:
    """Save today's count to history, then reset it to zero.

    Args:
        confirm: Must be true; without it the confirmation prompt is returned

    Returns:
        The saved history entry and the updated counter state
    """
    if not confirm:
        return _needs_confirmation(confirmations.RESET_TODAY)

    session = get_session()
    entry = session.reset_today()
    return {"saved": entry.model_dump(), "today": session.status().model_dump()}


@mcp.tool()
def reset_all_time(confirm: bool = False) -> dict:
    """Reset the all-time count to zero. Today's count and history are kept.

    Args:
        confirm: Must be true; without it the confirmation prompt is returned
    """
    if not confirm:
        return _needs_confirmation(confirmations.RESET_ALL_TIME)

    session = get_session()
    session.reset_all_time()
    return session.status().model_dump()


# ==================== Goal Tools ====================


@mcp.tool()
def set_goal(goal: int | str) -> dict:
    """Set today's goal. Use 0 to clear it.

    Args:
        goal: Non-negative whole number (e.g., 108)

    Returns:
        Updated counter state, or an error if the goal is invalid
    """
    session = get_session()
    try:
        session.set_goal(goal)
    except ValidationError as e:
        return {"error": str(e)}
    return session.status().model_dump()


# ==================== History Tools ====================


@mcp.tool()
def view_history() -> dict:
    """Save today's progress to history and return the last 30 days.

    Returns:
        Dictionary with entries (newest first), best_day_count and current_streak
    """
    return get_session().view_history().model_dump()


@mcp.tool()
def delete_history_entry(date_str: str, confirm: bool = False) -> dict:
    """Delete one day from history.

    Args:
        date_str: Date in YYYY-MM-DD format
        confirm: Must be true; without it the confirmation prompt is returned
    """
    if not confirm:
        return _needs_confirmation(confirmations.DELETE_HISTORY_ENTRY, date=date_str)

    session = get_session()
    try:
        deleted = session.delete_history_entry(date_str)
    except ValidationError as e:
        return {"error": str(e)}
    return {"deleted": deleted, "history": session.history_view().model_dump()}


@mcp.tool()
def clear_history(confirm: bool = False) -> dict:
    """Remove all history. This cannot be undone.

    Args:
        confirm: Must be true; without it the confirmation prompt is returned
    """
    if not confirm:
        return _needs_confirmation(confirmations.CLEAR_HISTORY)

    get_session().clear_history()
    return {"success": True}


# ==================== Auto-Increment Tools ====================


@mcp.tool()
def start_auto_increment(interval_ms: int | str) -> dict:
    """Start counting automatically at a fixed interval.

    Args:
        interval_ms: Milliseconds between counts; values below the minimum are raised to it

    Returns:
        The effective interval, or an error if the input is invalid
    """
    session = get_session()
    try:
        effective = session.start_auto_increment(interval_ms)
    except ValidationError as e:
        return {"error": str(e)}
    return {"active": True, "interval_ms": effective}


@mcp.tool()
def stop_auto_increment() -> dict:
    """Stop automatic counting."""
    stopped = get_session().stop_auto_increment()
    return {"active": False, "stopped": stopped}


# ==================== Theme Tools ====================


@mcp.tool()
def set_theme_color(color: str) -> dict:
    """Choose the app's theme color.

    Args:
        color: Color identifier, stored as given (e.g., "#E29F36")
    """
    try:
        theme = get_session().set_theme_color(color)
    except ValidationError as e:
        return {"error": str(e)}
    return {"theme_color": theme}
