"""Threaded comment and moderation engine for the streaming platform."""

__version__ = "0.1.0"
