"""Slack notification service for the Vibe Flow community site."""

__version__ = "0.1.0"
