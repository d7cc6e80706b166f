"""StayIN - session lifecycle and role-gated navigation for the rental app."""

__version__ = "0.1.0"

from stayin.exceptions import (
    NotSignedInError,
    ProfileFetchError,
    ReadinessTaskError,
    StayinError,
)

__all__ = [
    "__version__",
    "NotSignedInError",
    "ProfileFetchError",
    "ReadinessTaskError",
    "StayinError",
]
