"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    users.py     /users CRUD endpoints over an injected UserStore
    health.py    /health liveness endpoint

=============================================================================
"""

from .users import UserHandler, parse_user_id
from .health import HealthHandler

__all__ = [
    "UserHandler",
    "parse_user_id",
    "HealthHandler",
]
