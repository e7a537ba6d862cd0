"""Route modules exposed by the API package."""

from . import audit, system, tickets

__all__ = ["audit", "system", "tickets"]
