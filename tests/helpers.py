from __future__ import annotations

import struct
from pathlib import Path

from pxenet.menu import BootCatalog, iter_referenced_files
from pxenet.net.dhcp import DhcpPacket

MAC = bytes.fromhex("525400123456")


def populate_http_root(root: Path, catalog: BootCatalog) -> list[Path]:
    """Create a placeholder for every file the catalog fetches."""
    created = []
    for _label, rel in iter_referenced_files(catalog):
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"x")
        created.append(path)
    return created


def pxe_request(
    *,
    arch: int = 7,
    user_class: bytes | None = None,
    message_type: int = 1,
    class_id: bytes = b"PXEClient:Arch:00007:UNDI:003016",
    xid: int = 0x2A3B4C5D,
    drop: tuple[int, ...] = (),
) -> DhcpPacket:
    options = {
        53: bytes([message_type]),
        55: bytes([1, 3, 43, 60, 66, 67]),
        60: class_id,
        93: struct.pack("!H", arch),
        94: bytes([1, 3, 16]),
    }
    if user_class is not None:
        options[77] = user_class
    for code in drop:
        options.pop(code, None)
    return DhcpPacket(op=1, xid=xid, secs=4, chaddr=MAC, options=options)
