"""Backstep - step backward through recorded tool invocations."""

try:
    from importlib.metadata import version

    __version__ = version("backstep")
except Exception:
    __version__ = "0.0.0"  # Fallback for development/testing

__all__ = ["__version__"]
