"""Exception types raised by rcoil."""
from __future__ import annotations


class RcoilError(Exception):
    """Base class for rcoil errors."""


class ConfigurationError(RcoilError, ValueError):
    """
    Raised synchronously while building a coil.

    Covers duplicate group ids, requests added before any group was started,
    malformed urls or HTTP configs, and invalid plan files. The call that
    raises leaves the tree unmodified.
    """


__all__ = ["RcoilError", "ConfigurationError"]
