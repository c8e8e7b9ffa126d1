"""DateTime helpers.

Timestamps are stored as offset-naive UTC, compatible with
``TIMESTAMP WITHOUT TIME ZONE`` columns.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Get current UTC datetime without timezone info (offset-naive).

    Example:
        >>> utc_now().tzinfo is None
        True
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Callable for SQLAlchemy default/onupdate parameters
utc_now_lambda = utc_now
