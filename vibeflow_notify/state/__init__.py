"""Persistent state: delivery audit log and webhook targets."""
