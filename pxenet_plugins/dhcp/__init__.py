# pxenet_plugins/dhcp/__init__.py
from __future__ import annotations

CATEGORY_DESCRIPTION = "ProxyDHCP responder rules, seen clients and packet decoding."
