"""Core facade for twiggit."""

from .twiggit import Twiggit

__all__ = ["Twiggit"]
