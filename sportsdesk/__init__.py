"""
Sportsdesk Backend

Sports news, leagues, live matches and user accounts served from a
document store with an optional read-through Redis cache.
"""

__version__ = "0.1.0"
