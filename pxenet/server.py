#!/usr/bin/env python3
# pxenet/server.py
from __future__ import annotations

"""
BootServer: wires ProxyDHCP, TFTP and HTTP together from an AppConfig.

Default responder table (last match wins):
    arch EFI BC      -> tftp ipxe.efi
    arch x86 BIOS    -> tftp undionly.kpxe
    user class iPXE  -> <BASE_URL>/<SCRIPT_NAME>
"""

from pathlib import Path
from typing import Callable, Optional
import logging
import threading

from pxenet.db import AppConfig, record_client
from pxenet.menu import BootCatalog, load_catalog, render_script
from pxenet.net.dhcp import (
    ARCH_EFI_BC,
    ARCH_X86_BIOS,
    Answer,
    DhcpProxy,
    ProxyResponder,
    Responder,
)
from pxenet.net.supervisor import ServiceStatus, Supervisor

log = logging.getLogger(__name__)

IPXE_USER_CLASS = "iPXE"
EFI_LOADER = "ipxe.efi"
BIOS_LOADER = "undionly.kpxe"


def default_responders(config: AppConfig) -> list[Responder]:
    addr = config.server_address
    return [
        Responder(ARCH_EFI_BC, None, addr, EFI_LOADER),
        Responder(ARCH_X86_BIOS, None, addr, BIOS_LOADER),
        Responder(None, IPXE_USER_CLASS, addr, config.script_url),
    ]


def record_answer(answer: Answer) -> None:
    record_client(
        mac=answer.request.mac,
        architecture=answer.request.architecture,
        user_class=answer.request.user_class,
        boot_file=answer.responder.boot_file,
        server=answer.responder.redirect_to,
    )


class BootServer:
    def __init__(
        self,
        config: AppConfig,
        catalog: BootCatalog,
        *,
        responders: Optional[list[Responder]] = None,
        on_response: Optional[Callable[[Answer], None]] = record_answer,
    ) -> None:
        self.config = config
        self._catalog = catalog
        self._catalog_lock = threading.Lock()
        self.responder = ProxyResponder(responders if responders is not None
                                        else default_responders(config))
        self.on_response = on_response
        self.supervisor: Optional[Supervisor] = None

    # --- catalog ---

    @property
    def catalog(self) -> BootCatalog:
        with self._catalog_lock:
            return self._catalog

    def set_catalog(self, catalog: BootCatalog) -> None:
        with self._catalog_lock:
            self._catalog = catalog

    def reload_catalog(self) -> BootCatalog:
        """Re-read CATALOG_FILE; keeps the current catalog when none is configured."""
        path = self.config.catalog_file
        if path is None:
            return self.catalog
        catalog = load_catalog(path, base_url=self.config.base_url)
        self.set_catalog(catalog)
        log.info("Reloaded catalog from %s (%d targets)", path, len(catalog.targets))
        return catalog

    def render(self) -> str:
        return render_script(self.catalog)

    # --- service factories ---

    def _dhcp_factory(self) -> DhcpProxy:
        return DhcpProxy(
            self.responder,
            address=self.config.bind_address,
            port=self.config.dhcp_port,
            on_response=self.on_response,
        )

    def _tftp_factory(self):
        from pxenet.net.tftp import TftpService
        return TftpService(self.config.tftp_root, address=self.config.bind_address,
                           port=self.config.tftp_port, timeout=self.config.timeout)

    def _ssl_context(self):
        from pxenet.net.tls import ensure_certificate, server_context
        cert, key = ensure_certificate(
            self.config.server_address, self.config.state_dir,
            self.config.tls_cert_file, self.config.tls_key_file,
        )
        return server_context(cert, key)

    def _http_factory(self):
        from pxenet.net.http import HttpService
        return HttpService(
            self.config.http_root,
            self.render,
            address=self.config.bind_address,
            port=self.config.http_port,
            script_name=self.config.script_name,
            ssl_context_factory=self._ssl_context if self.config.enable_tls else None,
        )

    def services(self) -> list[tuple[str, Callable]]:
        out: list[tuple[str, Callable]] = []
        if self.config.enable_dhcp:
            out.append(("dhcp", self._dhcp_factory))
        if self.config.enable_tftp:
            out.append(("tftp", self._tftp_factory))
        if self.config.enable_http:
            out.append(("http", self._http_factory))
        return out

    # --- lifecycle ---

    @property
    def running(self) -> bool:
        return self.supervisor is not None and not self.supervisor.stopping

    def start(self) -> list[str]:
        if self.running:
            raise RuntimeError("Boot server already running")
        services = self.services()
        if not services:
            log.warning("All services disabled; nothing to start")
        self.supervisor = Supervisor(restart_delay=self.config.restart_delay)
        for name, factory in services:
            self.supervisor.spawn(name, factory)
        log.info("Boot menu at %s", self.config.script_url)
        return [name for name, _ in services]

    def stop(self) -> None:
        if self.supervisor is None:
            return
        self.supervisor.stop(timeout=self.config.timeout)
        self.supervisor = None

    def status(self) -> list[ServiceStatus]:
        return self.supervisor.status() if self.supervisor else []

    def wait(self, event: Optional[threading.Event] = None) -> None:
        """Block until `event` is set or KeyboardInterrupt, then stop."""
        stop = event or threading.Event()
        try:
            while not stop.wait(0.5):
                pass
        except KeyboardInterrupt:
            log.info("Interrupted, shutting down")
        finally:
            self.stop()


# Active server for console commands
_ACTIVE: Optional[BootServer] = None


def set_active_server(server: Optional[BootServer]) -> None:
    global _ACTIVE
    _ACTIVE = server


def get_active_server() -> Optional[BootServer]:
    return _ACTIVE


def ensure_roots(config: AppConfig) -> list[Path]:
    created = []
    for path in (config.http_root, config.tftp_root, config.state_dir):
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
            created.append(path)
    return created
