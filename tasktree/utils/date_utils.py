"""
Centralized date/time utilities
All task timestamps should come from this module
"""

from datetime import datetime, timezone


def get_current_datetime() -> datetime:
    """
    Get current datetime in UTC
    
    Returns:
        Current timezone-aware datetime
    """
    return datetime.now(timezone.utc)


def get_current_datetime_str() -> str:
    """
    Get current datetime as ISO 8601 string
    
    Returns:
        Current datetime, e.g. 2025-11-13T15:30:45.123456+00:00
    """
    return get_current_datetime().isoformat()
