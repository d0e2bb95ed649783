"""Version information for twiggit."""

__version__ = "0.1.0"
