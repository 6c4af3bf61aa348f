"""Flask JSON API for the student finance tracker."""

from .app import create_app

__all__ = ["create_app"]
