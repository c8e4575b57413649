"""
Sportsdesk Global Constants

Centralized location for system-wide constants used across the application.
"""

from datetime import datetime, timezone

# Canonical category spellings as stored by the editorial tools.
NEWS_CATEGORIES = (
    "Cricket",
    "Football",
    "Basketball",
    "Volleyball",
    "Tennis",
    "Athletics",
    "Olympics",
    "Other",
)
LEAGUE_CATEGORIES = ("Cricket", "Football", "Basketball", "Volleyball", "Other")
MATCH_CATEGORIES = ("cricket", "football", "basketball", "volleyball", "othersports")

# Older articles were imported with this category name.
LEGACY_NEWS_CATEGORY_ALIASES = {"Other_sports": "Other"}

MATCH_STATUSES = ("scheduled", "live", "completed", "postponed", "cancelled")

CACHE_FAMILIES = ("news", "leagues", "users", "matches")


def get_current_timestamp() -> datetime:
    """Get current timestamp with UTC timezone."""
    return datetime.now(timezone.utc)


# Application Constants
APP_NAME = "Sportsdesk"
APP_VERSION = "0.1.0"
