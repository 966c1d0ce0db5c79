# mentorbook/api/__init__.py
# This file makes the api directory a Python package.

from . import auth
from . import availability
from . import connection
from . import cron
from . import mentor
from . import session

__all__ = [
    "auth",
    "mentor",
    "availability",
    "connection",
    "session",
    "cron",
]
