"""Stateless helpers shared by the HTTP surface."""
