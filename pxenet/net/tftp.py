#!/usr/bin/env python3
# pxenet/net/tftp.py
from __future__ import annotations

"""
Read-only TFTP service for the first-stage loaders (ipxe.efi, undionly.kpxe).

Wraps tftpy.TftpServer. Write requests are refused with an access
violation; reads are confined to the root by tftpy itself.
"""

from pathlib import Path
import logging
import threading

import tftpy

log = logging.getLogger(__name__)

# tftpy logs every packet at INFO
logging.getLogger("tftpy").setLevel(logging.WARNING)

FIRST_STAGE_LOADERS = ("ipxe.efi", "undionly.kpxe")


def _refuse_upload(path, context):
    log.warning("TFTP write request for %s refused (read-only server)", path)
    return None


class TftpService:
    def __init__(self, root: str | Path, *, address: str = "0.0.0.0", port: int = 69,
                 timeout: int = 5) -> None:
        self.root = Path(root).resolve()
        self.address = address
        self.port = port
        self.timeout = timeout
        self._server: tftpy.TftpServer | None = None
        self._lock = threading.Lock()
        self._stopped = threading.Event()

    def serve_forever(self) -> None:
        if not self.root.is_dir():
            raise FileNotFoundError(f"TFTP root does not exist: {self.root}")
        with self._lock:
            if self._stopped.is_set():
                return
            self._server = tftpy.TftpServer(str(self.root), upload_open=_refuse_upload)
            server = self._server
        log.info("TFTP serving %s on %s:%d", self.root, self.address, self.port)
        try:
            # a stop() issued before listen() binds makes listen() close right away
            server.listen(self.address, self.port, timeout=self.timeout)
        finally:
            with self._lock:
                self._server = None

    def stop(self) -> None:
        with self._lock:
            self._stopped.set()
            server = self._server
        if server is not None:
            server.stop(now=True)


def missing_loaders(root: str | Path) -> list[str]:
    base = Path(root)
    return [name for name in FIRST_STAGE_LOADERS if not (base / name).is_file()]
