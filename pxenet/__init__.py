#!/usr/bin/env python3
# pxenet/__init__.py
from __future__ import annotations
"""
pxenet: network boot server with an iPXE operating-system menu.

Keep this module light: subpackages import their own dependencies so that
`pxenet.menu` can be used without pulling in the network services.
"""

from .errors import CatalogError, ConfigError, PacketError, PxenetError

__version__ = "0.3.0"

__all__ = [
    "__version__",
    "PxenetError",
    "CatalogError",
    "ConfigError",
    "PacketError",
]
