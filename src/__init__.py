# src/__init__.py — v1
"""loretech: agent-facing echo server with local run staging."""
