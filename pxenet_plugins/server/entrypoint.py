# pxenet_plugins/server/entrypoint.py
from __future__ import annotations

from pxenet.commands import CommandResult, command
from pxenet.server import get_active_server, set_active_server
from pxenet.ui import colorize, format_table

from .. import _common

_STATE_COLORS = {"running": "green", "restarting": "yellow", "stopped": "dim", "starting": "cyan"}


@command(
    name="server-start",
    description="Start the enabled boot services under the supervisor.",
    category="server",
)
def cmd_server_start() -> CommandResult:
    server = _common.server_or_new()
    if server.running:
        return CommandResult.error("Boot server already running.")
    names = server.start()
    set_active_server(server)
    if not names:
        return CommandResult(message="All services are disabled in the configuration.")
    return CommandResult(message=f"Started: {', '.join(names)}. Menu at {server.config.script_url}")


@command(
    name="server-stop",
    description="Stop all boot services.",
    category="server",
)
def cmd_server_stop() -> CommandResult:
    server = get_active_server()
    if server is None or not server.running:
        return CommandResult.error("Boot server is not running.")
    server.stop()
    return CommandResult(message="Stopped.")


@command(
    name="server-status",
    description="Show each service's state and restart count.",
    category="server",
    aliases=["status"],
)
def cmd_server_status() -> CommandResult:
    server = get_active_server()
    if server is None or not server.running:
        return CommandResult(message="Boot server is not running.")
    cfg = server.config
    rows = [[s.name, colorize(s.state, _STATE_COLORS.get(s.state, "reset")),
             str(s.restarts), s.last_error or "-"] for s in server.status()]
    header = (f"Server {cfg.server_address}  bind {cfg.bind_address}  "
              f"dhcp:{cfg.dhcp_port} tftp:{cfg.tftp_port} http:{cfg.http_port}")
    table = format_table(rows, headers=["Service", "State", "Restarts", "Last error"])
    return CommandResult(message=f"{header}\n{table}", data=server.status())
