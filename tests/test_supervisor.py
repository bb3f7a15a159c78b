from __future__ import annotations

import threading
import time

from pxenet.net.supervisor import RESTARTING, RUNNING, STOPPED, Supervisor


class BlockingService:
    def __init__(self) -> None:
        self.stopped = threading.Event()

    def serve_forever(self) -> None:
        self.stopped.wait()

    def stop(self) -> None:
        self.stopped.set()


class ReturningService:
    def serve_forever(self) -> None:
        return None

    def stop(self) -> None:
        pass


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_failed_service_is_rebuilt_after_delay() -> None:
    calls = []

    def factory():
        calls.append(time.monotonic())
        if len(calls) == 1:
            raise OSError("Address already in use")
        return BlockingService()

    supervisor = Supervisor(restart_delay=0.1)
    supervisor.spawn("http", factory)
    try:
        assert _wait_for(lambda: supervisor.get("http").state == RUNNING and len(calls) == 2)
        status = supervisor.get("http")
        assert status.restarts == 1
        assert "Address already in use" in status.last_error
        assert calls[1] - calls[0] >= 0.09
    finally:
        supervisor.stop()
    assert supervisor.get("http").state == STOPPED


def test_service_that_returns_is_restarted() -> None:
    supervisor = Supervisor(restart_delay=0.01)
    supervisor.spawn("tftp", ReturningService)
    try:
        assert _wait_for(lambda: supervisor.get("tftp").restarts >= 2)
        assert supervisor.get("tftp").state in (RUNNING, RESTARTING)
    finally:
        supervisor.stop()


def test_stop_stops_every_service() -> None:
    services = []

    def factory():
        services.append(BlockingService())
        return services[-1]

    supervisor = Supervisor(restart_delay=5)
    supervisor.spawn("dhcp", factory)
    supervisor.spawn("http", factory)
    assert _wait_for(lambda: all(s.state == RUNNING for s in supervisor.status()))

    supervisor.stop()
    assert all(s.stopped.is_set() for s in services)
    assert [(s.name, s.state, s.restarts) for s in supervisor.status()] == [
        ("dhcp", STOPPED, 0), ("http", STOPPED, 0)]
