"""Single source of truth for the SmartZoom version number."""

__version__ = "0.4.0"
