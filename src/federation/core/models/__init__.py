"""Federation data models."""

from .result import LookupResult, LookupStatus
from .user import CanonicalUserRecord, parse_user

__all__ = [
    "CanonicalUserRecord",
    "LookupResult",
    "LookupStatus",
    "parse_user",
]
