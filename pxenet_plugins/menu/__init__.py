# pxenet_plugins/menu/__init__.py
from __future__ import annotations

CATEGORY_DESCRIPTION = "Boot menu: list targets, render and verify the iPXE script."
