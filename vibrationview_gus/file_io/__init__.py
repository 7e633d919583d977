"""File system access."""

from .profile_listing import (
    PROFILE_PATTERNS,
    find_test_profiles,
    list_test_profiles,
    resolve_profile_pattern,
)

__all__ = [
    "PROFILE_PATTERNS",
    "find_test_profiles",
    "list_test_profiles",
    "resolve_profile_pattern",
]
