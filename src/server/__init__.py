# src/server/__init__.py — v1
