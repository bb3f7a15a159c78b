# pxenet_plugins/server/__init__.py
from __future__ import annotations

CATEGORY_DESCRIPTION = "Start, stop and inspect the DHCP/TFTP/HTTP services."
