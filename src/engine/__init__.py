# src/engine/__init__.py — v1
"""Client for the remote echo engine."""
