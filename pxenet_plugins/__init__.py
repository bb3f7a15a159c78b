# pxenet_plugins/__init__.py
"""Operator console command groups (one subpackage per category)."""
