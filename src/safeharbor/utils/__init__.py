# src/safeharbor/utils/__init__.py
"""Utility helpers."""
