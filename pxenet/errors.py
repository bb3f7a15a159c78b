#!/usr/bin/env python3
# pxenet/errors.py
from __future__ import annotations

"""Exception hierarchy shared by the catalog, codec and config layers."""


class PxenetError(Exception):
    """Base class for pxenet errors."""


class CatalogError(PxenetError, ValueError):
    """Raised when a boot catalog entry is malformed or conflicts with another."""


class PacketError(PxenetError, ValueError):
    """Raised when a DHCP/BOOTP datagram cannot be decoded or encoded."""


class ConfigError(PxenetError, ValueError):
    """Raised when a configuration value fails validation."""
