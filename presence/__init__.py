"""Animated presence face for a chat-agent gateway."""

__version__ = "0.1.0"
