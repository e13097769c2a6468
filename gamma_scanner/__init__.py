"""Gap-down consolidation scanner with synthetic option plays."""

__version__ = "0.1.0"

__all__ = ["__version__"]
