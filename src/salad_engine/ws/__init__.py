"""
WebSocket server and event handling for the Canadian Salad game.
"""

from .server import create_app

__all__ = ["create_app"]
