#!/usr/bin/env python3
# pxenet/net/supervisor.py
from __future__ import annotations

"""
Keeps the network services alive.

Each service runs `factory().serve_forever()` on a daemon thread. When it
raises (or returns without being asked to stop) the error is logged, the
thread waits `restart_delay` seconds and builds a fresh service.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Protocol
import logging
import threading

log = logging.getLogger(__name__)

STARTING = "starting"
RUNNING = "running"
RESTARTING = "restarting"
STOPPED = "stopped"


class Service(Protocol):
    def serve_forever(self) -> None: ...
    def stop(self) -> None: ...


@dataclass(slots=True)
class ServiceStatus:
    name: str
    state: str = STARTING
    restarts: int = 0
    last_error: str = ""


class Supervisor:
    def __init__(self, restart_delay: float = 5.0) -> None:
        self.restart_delay = restart_delay
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._threads: dict[str, threading.Thread] = {}
        self._services: dict[str, Service] = {}
        self._status: dict[str, ServiceStatus] = {}

    def spawn(self, name: str, factory: Callable[[], Service]) -> None:
        with self._lock:
            if name in self._threads and self._threads[name].is_alive():
                raise ValueError(f"Service already running: {name}")
            self._status[name] = ServiceStatus(name)
        thread = threading.Thread(
            target=self._run, args=(name, factory), name=f"pxenet-{name}", daemon=True)
        with self._lock:
            self._threads[name] = thread
        thread.start()

    def _set(self, name: str, **changes) -> None:
        with self._lock:
            status = self._status[name]
            for key, value in changes.items():
                setattr(status, key, value)

    def _run(self, name: str, factory: Callable[[], Service]) -> None:
        while not self._stop.is_set():
            try:
                service = factory()
                with self._lock:
                    self._services[name] = service
                if self._stop.is_set():
                    break
                self._set(name, state=RUNNING)
                log.info("Starting %s", name)
                service.serve_forever()
                if self._stop.is_set():
                    break
                log.warning("%s stopped unexpectedly", name)
                self._set(name, last_error="stopped unexpectedly")
            except Exception as exc:  # noqa: BLE001
                if self._stop.is_set():
                    break
                log.error("%s error - %s", name, exc)
                self._set(name, last_error=f"{type(exc).__name__}: {exc}")
            finally:
                with self._lock:
                    self._services.pop(name, None)

            with self._lock:
                self._status[name].state = RESTARTING
                self._status[name].restarts += 1
            log.info("Restarting %s in %s seconds", name, self.restart_delay)
            if self._stop.wait(self.restart_delay):
                break
        self._set(name, state=STOPPED)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        with self._lock:
            services = list(self._services.items())
            threads = list(self._threads.values())
        for name, service in services:
            try:
                service.stop()
            except Exception as exc:  # noqa: BLE001
                log.warning("Error stopping %s: %s", name, exc)
        for thread in threads:
            thread.join(timeout)
        log.info("All services stopped")

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def status(self) -> list[ServiceStatus]:
        with self._lock:
            return [ServiceStatus(s.name, s.state, s.restarts, s.last_error)
                    for s in self._status.values()]

    def get(self, name: str) -> Optional[ServiceStatus]:
        with self._lock:
            s = self._status.get(name)
            return ServiceStatus(s.name, s.state, s.restarts, s.last_error) if s else None
