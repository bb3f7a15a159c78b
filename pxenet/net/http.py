#!/usr/bin/env python3
# pxenet/net/http.py
from __future__ import annotations

"""
HTTP side of the boot server (http.server).

Serves HTTP_ROOT as static files (kernels, initrds, wimboot, WinPE files)
plus the menu script, which is rendered from the catalog on every request
so edits to the catalog file show up on the next boot without a restart.
"""

from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Callable, Optional
import logging
import os
import ssl
import threading
import urllib.parse

from pxenet import PxenetError, __version__

log = logging.getLogger(__name__)

SCRIPT_CONTENT_TYPE = "text/plain; charset=utf-8"


class BootRequestHandler(SimpleHTTPRequestHandler):
    server: "BootHTTPServer"
    server_version = f"pxenet/{__version__}"

    def __init__(self, request, client_address, server: "BootHTTPServer") -> None:
        super().__init__(request, client_address, server, directory=str(server.root))

    # --- routing ---

    def _request_path(self) -> str:
        return urllib.parse.unquote(urllib.parse.urlsplit(self.path).path)

    def _is_script(self) -> bool:
        return self._request_path() == "/" + self.server.script_name

    def _inside_root(self) -> bool:
        if ".." in self._request_path().replace("\\", "/").split("/"):
            return False
        target = os.path.realpath(self.translate_path(self.path))
        root = os.path.realpath(self.server.root)
        return target == root or target.startswith(root + os.sep)

    def _send_script(self, *, head: bool) -> None:
        try:
            body = self.server.script_source().encode("utf-8")
        except PxenetError as exc:
            log.error("Cannot render %s: %s", self.server.script_name, exc)
            self.send_error(HTTPStatus.INTERNAL_SERVER_ERROR, "Boot menu unavailable")
            return
        self.send_response(HTTPStatus.OK)
        self.send_header("Content-Type", SCRIPT_CONTENT_TYPE)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        if not head:
            self.wfile.write(body)

    def do_GET(self) -> None:
        if self._is_script():
            self._send_script(head=False)
        elif not self._inside_root():
            self.send_error(HTTPStatus.FORBIDDEN, "Forbidden")
        else:
            super().do_GET()

    def do_HEAD(self) -> None:
        if self._is_script():
            self._send_script(head=True)
        elif not self._inside_root():
            self.send_error(HTTPStatus.FORBIDDEN, "Forbidden")
        else:
            super().do_HEAD()

    def list_directory(self, path):
        self.send_error(HTTPStatus.NOT_FOUND, "File not found")
        return None

    # --- logging ---

    def log_message(self, format: str, *args) -> None:
        log.info("HTTP %s - %s", self.address_string(), format % args)

    def log_error(self, format: str, *args) -> None:
        log.warning("HTTP %s - %s", self.address_string(), format % args)


class BootHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True
    # seconds a client gets to finish the TLS handshake
    handshake_timeout = 10.0

    def __init__(
        self,
        address: tuple[str, int],
        root: str | Path,
        script_source: Callable[[], str],
        *,
        script_name: str = "boot.ipxe",
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> None:
        self.root = Path(root).resolve()
        self.script_source = script_source
        self.script_name = script_name
        self.ssl_context = ssl_context
        super().__init__(address, BootRequestHandler)

    def finish_request(self, request, client_address) -> None:
        """Runs on the per-connection thread, so a stalled handshake blocks only its client."""
        if self.ssl_context is None:
            super().finish_request(request, client_address)
            return
        request.settimeout(self.handshake_timeout)
        try:
            tls = self.ssl_context.wrap_socket(request, server_side=True)
        except (ssl.SSLError, OSError) as exc:
            log.info("TLS handshake with %s failed: %s", client_address[0], exc)
            return
        tls.settimeout(None)
        try:
            super().finish_request(tls, client_address)
        finally:
            self.shutdown_request(tls)


class HttpService:
    """Supervisor adapter: binds on serve_forever(), shuts down on stop()."""

    def __init__(
        self,
        root: str | Path,
        script_source: Callable[[], str],
        *,
        address: str = "0.0.0.0",
        port: int = 80,
        script_name: str = "boot.ipxe",
        ssl_context_factory: Optional[Callable[[], ssl.SSLContext]] = None,
    ) -> None:
        self.root = Path(root)
        self.script_source = script_source
        self.address = address
        self.port = port
        self.script_name = script_name
        self.ssl_context_factory = ssl_context_factory
        self._httpd: Optional[BootHTTPServer] = None
        self._lock = threading.Lock()
        self._stopped = threading.Event()

    @property
    def server_address(self) -> Optional[tuple[str, int]]:
        with self._lock:
            return self._httpd.server_address[:2] if self._httpd else None

    def serve_forever(self) -> None:
        if not self.root.is_dir():
            raise FileNotFoundError(f"HTTP root does not exist: {self.root}")
        ctx = self.ssl_context_factory() if self.ssl_context_factory else None
        if self._stopped.is_set():
            return
        httpd = BootHTTPServer(
            (self.address, self.port), self.root, self.script_source,
            script_name=self.script_name, ssl_context=ctx,
        )
        with self._lock:
            if self._stopped.is_set():
                httpd.server_close()
                return
            self._httpd = httpd
        scheme = "https" if ctx else "http"
        log.info("HTTP serving %s on %s://%s:%d", self.root, scheme, *httpd.server_address[:2])
        try:
            httpd.serve_forever(poll_interval=0.5)
        finally:
            httpd.server_close()
            with self._lock:
                self._httpd = None

    def stop(self) -> None:
        with self._lock:
            self._stopped.set()
            httpd = self._httpd
        if httpd is not None:
            httpd.shutdown()
