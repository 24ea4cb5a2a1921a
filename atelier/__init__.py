"""Atelier admin console: product image upload and gallery management."""

__version__ = "1.0.0"
