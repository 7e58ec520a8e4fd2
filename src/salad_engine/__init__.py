"""
Canadian Salad: a six-round trick-taking card game server.
"""

from .engine import SaladEngine
from .game_state import apply_play
from .serialization import game_over_view, view_for

__all__ = [
    "SaladEngine",
    "apply_play",
    "game_over_view",
    "view_for",
]
