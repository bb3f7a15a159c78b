#!/usr/bin/env python3
# pxenet/net/__init__.py
from __future__ import annotations

from .dhcp import (
    Answer,
    DhcpPacket,
    DhcpProxy,
    ProxyResponder,
    PxeRequest,
    Responder,
    architecture_name,
    build_offer,
    decode_packet,
    parse_pxe_request,
)
from .supervisor import ServiceStatus, Supervisor

__all__ = [
    "Answer",
    "DhcpPacket",
    "DhcpProxy",
    "ProxyResponder",
    "PxeRequest",
    "Responder",
    "architecture_name",
    "build_offer",
    "decode_packet",
    "parse_pxe_request",
    "ServiceStatus",
    "Supervisor",
]
