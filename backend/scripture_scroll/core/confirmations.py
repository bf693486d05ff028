"""Confirmation Policy - Which actions need the user's explicit consent.

The core only decides that confirmation is required; presenting the prompt is
left to the front-end.
"""

from .models import ConfirmationPrompt


RESET_TODAY = "reset_today"
RESET_ALL_TIME = "reset_all_time"
DELETE_HISTORY_ENTRY = "delete_history_entry"
CLEAR_HISTORY = "clear_history"


_PROMPTS = {
    RESET_TODAY: ("Reset Counter", "Are you sure you want to reset today's count?"),
    RESET_ALL_TIME: ("Reset All-Time", "Reset the all-time count to zero? This cannot be undone."),
    DELETE_HISTORY_ENTRY: ("Delete entry", "Delete the entry for {date}?"),
    CLEAR_HISTORY: ("Clear history", "Remove all history? This cannot be undone."),
}


def requires_confirmation(action: str) -> bool:
    return action in _PROMPTS


def confirmation_prompt(action: str, **context: str) -> ConfirmationPrompt:
    """Build the prompt for a destructive action.

    Args:
        action: One of the action constants in this module
        **context: Values interpolated into the message (e.g. date)

    Raises:
        KeyError: If the action does not need confirmation
    """
    title, message = _PROMPTS[action]
    return ConfirmationPrompt(action=action, title=title, message=message.format(**context))
