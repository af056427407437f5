"""
Store Error Translation

The database reports problems as PostgreSQL/PostgREST messages.
Users should not see "duplicate key value violates unique constraint
unique_user_budget_month_year"; they should see what went wrong in
their own terms.
"""

from typing import Any, Optional


DEFAULT_MESSAGE = "An unexpected error occurred"

# (constraint substring, message), checked in order
CHECK_CONSTRAINTS = [
    ("amount_positive", "Amount must be a positive number"),
    ("month_valid", "Month must be between 1 and 12"),
    ("year_valid", "Year must be between 2000 and 2100"),
    ("deadline_future", "Deadline must be in the future"),
]

UNIQUE_CONSTRAINTS = [
    ("unique_user_budget_month_year", "Budget for this month already exists"),
    ("unique_category_name_type", "A category with this name and type already exists"),
]


def error_text(error: Any) -> str:
    """Pull a message out of whatever the store or client raised."""
    if error is None:
        return DEFAULT_MESSAGE
    if isinstance(error, str):
        return error or DEFAULT_MESSAGE
    message = getattr(error, "message", None)
    if message:
        return str(message)
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    text = str(error)
    return text or DEFAULT_MESSAGE


def describe_store_error(error: Any, context: Optional[str] = None) -> str:
    """
    Translate a store error into a message fit for a notification.

    Known constraint names map to specific messages; anything else
    passes through as the store phrased it.
    """
    message = error_text(error)

    if "violates row-level security policy" in message:
        return (
            "You don't have permission to access this data. "
            "Please make sure you're logged in."
        )

    if "violates check constraint" in message:
        for constraint, friendly in CHECK_CONSTRAINTS:
            if constraint in message:
                return friendly
        return "Invalid data provided"

    if "duplicate key value violates unique constraint" in message:
        for constraint, friendly in UNIQUE_CONSTRAINTS:
            if constraint in message:
                return friendly
        return "This record already exists"

    if context:
        return f"{context}: {message}"
    return message
