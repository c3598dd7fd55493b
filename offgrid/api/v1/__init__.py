"""
API v1 router exports.
Provides API endpoint routers.
"""
from offgrid.api.v1 import auth, conversations, discover, friends, messages, profiles

__all__ = [
    "auth",
    "conversations",
    "discover",
    "friends",
    "messages",
    "profiles",
]
