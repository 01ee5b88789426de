"""
Application wiring for the Guidepost session client.
"""

from .dependencies import ServiceContainer

__all__ = ["ServiceContainer"]
