"""Pydantic schemas for request/response validation."""

from .common import *  # noqa: F403
from .health import *  # noqa: F403
from .tour import *  # noqa: F403
from .user import *  # noqa: F403
