"""
mechturk - remote-control bridge for a running game engine editor/runtime.
"""

__version__ = "0.4.0"
__logo__ = "🦾"
