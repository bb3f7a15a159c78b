#!/usr/bin/env python3
# pxenet/boot/__init__.py
from __future__ import annotations

from .boot import BootState, boot_sequence, current_state, is_privileged, load_boot_catalog

__all__ = ["BootState", "boot_sequence", "current_state", "is_privileged", "load_boot_catalog"]
