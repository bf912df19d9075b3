"""Stencil backends for the interpolation engine."""

from .factory import build_backend

__all__ = ["build_backend"]
