# src/storage/__init__.py — v1
"""Run staging and local echo references on the filesystem."""
