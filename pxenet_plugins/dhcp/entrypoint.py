# pxenet_plugins/dhcp/entrypoint.py
from __future__ import annotations

"""
DHCP commands:
    - dhcp-rules:   responder table (last match wins)
    - dhcp-clients: PXE clients answered so far
    - dhcp-forget:  drop a client from the log
    - dhcp-decode:  decode a hex datagram and show the would-be answer
"""

import binascii

from pxenet.commands import CommandResult, command
from pxenet.db import forget_client, list_clients
from pxenet.net.dhcp import (
    MESSAGE_TYPES,
    OPT_CLASS_ID,
    OPT_USER_CLASS,
    architecture_name,
    decode_packet,
)
from pxenet.ui import format_table

from .. import _common


@command(
    name="dhcp-rules",
    description="Show ProxyDHCP responders in evaluation order (the last match wins).",
    category="dhcp",
)
def cmd_dhcp_rules() -> CommandResult:
    responders = _common.server_or_new().responder.responders
    rows = []
    for index, rule in enumerate(responders, 1):
        arch = "*" if rule.architecture is None else f"{rule.architecture} ({architecture_name(rule.architecture)})"
        rows.append([str(index), arch, rule.user_class or "*", rule.redirect_to, rule.boot_file])
    table = format_table(rows, headers=["#", "Architecture", "User class", "Server", "Boot file"])
    return CommandResult(message=table, data=responders)


@command(
    name="dhcp-clients",
    description="List PXE clients answered by the responder, newest first.",
    example="dhcp-clients 50",
    category="dhcp",
)
def cmd_dhcp_clients(limit: int = 20) -> CommandResult:
    _common.ensure_database()
    rows = list_clients(limit=limit)
    if not rows:
        return CommandResult(message="No PXE clients seen yet.")
    table = format_table(
        [[r["mac"], architecture_name(r["architecture"]), r["user_class"] or "-",
          r["boot_file"], str(r["requests"]), r["last_seen"]] for r in rows],
        headers=["MAC", "Architecture", "User class", "Boot file", "Requests", "Last seen"],
    )
    return CommandResult(message=table, data=rows)


@command(
    name="dhcp-forget",
    description="Remove a client (by MAC) from the client log.",
    example="dhcp-forget 52:54:00:12:34:56",
    category="dhcp",
)
def cmd_dhcp_forget(mac: str) -> CommandResult:
    _common.ensure_database()
    if forget_client(mac):
        return CommandResult(message=f"Forgot {mac.upper()}.")
    return CommandResult.error(f"No such client: {mac}")


@command(
    name="dhcp-decode",
    description="Decode a hex-encoded DHCP datagram and show what the responder would answer.",
    example="dhcp-decode 0101060012345678...",
    category="dhcp",
)
def cmd_dhcp_decode(hexdata: str) -> CommandResult:
    try:
        raw = binascii.unhexlify("".join(hexdata.split()).replace(":", ""))
        packet = decode_packet(raw)
    except (binascii.Error, ValueError) as exc:
        return CommandResult.error(f"Cannot decode packet: {exc}")

    msg_type = packet.message_type
    pairs = [
        ["op", "BOOTREQUEST" if packet.op == 1 else "BOOTREPLY" if packet.op == 2 else str(packet.op)],
        ["xid", f"0x{packet.xid:08x}"],
        ["mac", packet.mac],
        ["message type", MESSAGE_TYPES.get(msg_type, str(msg_type)) if msg_type else "-"],
        ["class id", packet.options.get(OPT_CLASS_ID, b"").decode("ascii", "replace") or "-"],
        ["user class", packet.options.get(OPT_USER_CLASS, b"").decode("utf-8", "replace") or "-"],
        ["options", ", ".join(str(code) for code in packet.options)],
    ]

    answer = _common.server_or_new().responder.answer(packet)
    if answer is None:
        pairs.append(["answer", "ignored (not a PXE request or no matching rule)"])
    else:
        pairs += [
            ["architecture", architecture_name(answer.request.architecture)],
            ["answer", f"OFFER from {answer.responder.redirect_to}"],
            ["boot file", answer.responder.boot_file],
        ]
    return CommandResult(message=format_table(pairs, headers=["Field", "Value"]), data=answer)
