#!/usr/bin/env python3
# pxenet/net/dhcp.py
from __future__ import annotations

"""
ProxyDHCP responder for PXE clients (UDP/67), standard library only.

pxenet never leases addresses. It listens next to the real DHCP server and
answers PXE boot requests with the boot server address and the boot file
appropriate for the client:

    firmware (arch 7, EFI BC)  -> ipxe.efi       over TFTP
    firmware (arch 0, BIOS)    -> undionly.kpxe  over TFTP
    iPXE (user class "iPXE")   -> http://<server>/boot.ipxe

Notes:
- Only BOOTREQUESTs carrying options 53 (DISCOVER/REQUEST), 55, 60
  ("PXEClient..."), 93 and 94 are answered; everything else is ignored.
- Responders are evaluated in order and the LAST match wins, so put the
  most specific rule (the iPXE user class) last.
- Replies are broadcast to 255.255.255.255:68.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional
import ipaddress
import logging
import socket
import struct
import threading

from pxenet.errors import PacketError

log = logging.getLogger(__name__)

BOOTREQUEST = 1
BOOTREPLY = 2

MAGIC_COOKIE = b"\x63\x82\x53\x63"
FLAG_BROADCAST = 0x8000

# DHCP option codes we read or write
OPT_PAD = 0
OPT_VENDOR_SPECIFIC = 43
OPT_MESSAGE_TYPE = 53
OPT_SERVER_ID = 54
OPT_PARAM_REQUEST_LIST = 55
OPT_CLASS_ID = 60
OPT_BOOTFILE_NAME = 67
OPT_USER_CLASS = 77
OPT_CLIENT_ARCH = 93
OPT_CLIENT_NDI = 94
OPT_END = 255

# Option 53 values
DHCPDISCOVER = 1
DHCPOFFER = 2
DHCPREQUEST = 3
DHCPDECLINE = 4
DHCPACK = 5
DHCPNAK = 6
DHCPRELEASE = 7
DHCPINFORM = 8

MESSAGE_TYPES = {
    DHCPDISCOVER: "Discover",
    DHCPOFFER: "Offer",
    DHCPREQUEST: "Request",
    DHCPDECLINE: "Decline",
    DHCPACK: "Ack",
    DHCPNAK: "Nak",
    DHCPRELEASE: "Release",
    DHCPINFORM: "Inform",
}

# Client system architecture (option 93, RFC 4578)
ARCH_X86_BIOS = 0
ARCH_EFI_IA32 = 6
ARCH_EFI_BC = 7
ARCH_EFI_X86_64 = 9
ARCH_EFI_ARM32 = 10
ARCH_EFI_ARM64 = 11

ARCHITECTURES = {
    ARCH_X86_BIOS: "Intel x86PC",
    1: "NEC/PC98",
    2: "EFI Itanium",
    3: "DEC Alpha",
    4: "Arc x86",
    5: "Intel Lean Client",
    ARCH_EFI_IA32: "EFI IA32",
    ARCH_EFI_BC: "EFI BC",
    8: "EFI Xscale",
    ARCH_EFI_X86_64: "EFI x86-64",
    ARCH_EFI_ARM32: "EFI ARM32",
    ARCH_EFI_ARM64: "EFI ARM64",
}

PXE_CLASS = "PXEClient"

# PXE vendor options sent in option 43: discovery control (6), 8 zero bytes, end
PXE_VENDOR_OPTIONS = bytes([6, 8]) + bytes(8) + bytes([OPT_END])

DHCP_SERVER_PORT = 67
DHCP_CLIENT_PORT = 68
_MAX_DATAGRAM = 1500

# op, htype, hlen, hops, xid, secs, flags, ciaddr, yiaddr, siaddr, giaddr, chaddr, sname, file
_HEADER = struct.Struct("!BBBBIHH4s4s4s4s16s64s128s")
_MIN_PACKET = _HEADER.size + len(MAGIC_COOKIE)


def architecture_name(code: Optional[int]) -> str:
    if code is None:
        return "unspecified"
    return ARCHITECTURES.get(code, f"unknown (0x{code:04x})")


def format_mac(raw: bytes) -> str:
    return ":".join(f"{b:02X}" for b in raw)


def _ip_bytes(value: str) -> bytes:
    try:
        return ipaddress.IPv4Address(value).packed
    except ValueError as exc:
        raise PacketError(f"Invalid IPv4 address: {value!r}") from exc


def _cstring(raw: bytes) -> bytes:
    return raw.split(b"\x00", 1)[0]


@dataclass(slots=True)
class DhcpPacket:
    """A BOOTP/DHCP datagram: fixed header plus options in wire order."""

    op: int = BOOTREQUEST
    htype: int = 1
    hlen: int = 6
    hops: int = 0
    xid: int = 0
    secs: int = 0
    flags: int = 0
    ciaddr: str = "0.0.0.0"
    yiaddr: str = "0.0.0.0"
    siaddr: str = "0.0.0.0"
    giaddr: str = "0.0.0.0"
    chaddr: bytes = b""
    sname: bytes = b""
    file: bytes = b""
    options: dict[int, bytes] = field(default_factory=dict)

    @property
    def mac(self) -> str:
        return format_mac(self.chaddr[: self.hlen or 6])

    @property
    def message_type(self) -> Optional[int]:
        value = self.options.get(OPT_MESSAGE_TYPE)
        return value[0] if value else None

    @property
    def is_broadcast(self) -> bool:
        return bool(self.flags & FLAG_BROADCAST)

    def encode(self) -> bytes:
        """Serialize to wire format (header, cookie, options, end)."""
        if len(self.chaddr) > 16 or len(self.sname) > 64 or len(self.file) > 128:
            raise PacketError("chaddr/sname/file exceed their BOOTP field sizes")
        header = _HEADER.pack(
            self.op, self.htype, self.hlen, self.hops,
            self.xid, self.secs, self.flags,
            _ip_bytes(self.ciaddr), _ip_bytes(self.yiaddr),
            _ip_bytes(self.siaddr), _ip_bytes(self.giaddr),
            self.chaddr, self.sname, self.file,
        )
        out = bytearray(header + MAGIC_COOKIE)
        for code, value in self.options.items():
            if code in (OPT_PAD, OPT_END):
                continue
            if len(value) > 255:
                raise PacketError(f"Option {code} is {len(value)} bytes; max is 255")
            out += struct.pack("!BB", code, len(value)) + value
        out.append(OPT_END)
        return bytes(out)


def _parse_options(buf: bytes, offset: int) -> dict[int, bytes]:
    """Decode the options area; repeated codes are concatenated (RFC 3396)."""
    options: dict[int, bytes] = {}
    while offset < len(buf):
        code = buf[offset]
        if code == OPT_END:
            break
        if code == OPT_PAD:
            offset += 1
            continue
        if offset + 1 >= len(buf):
            raise PacketError(f"Option {code} truncated before its length byte")
        length = buf[offset + 1]
        start = offset + 2
        if start + length > len(buf):
            raise PacketError(f"Option {code} claims {length} bytes past end of packet")
        options[code] = options.get(code, b"") + buf[start:start + length]
        offset = start + length
    return options


def decode_packet(buf: bytes) -> DhcpPacket:
    """Parse a DHCP datagram; raises PacketError on malformed input."""
    if len(buf) < _MIN_PACKET:
        raise PacketError(f"DHCP packet too short ({len(buf)} bytes)")
    fields = _HEADER.unpack_from(buf, 0)
    if buf[_HEADER.size:_MIN_PACKET] != MAGIC_COOKIE:
        raise PacketError("Missing DHCP magic cookie")
    (op, htype, hlen, hops, xid, secs, flags,
     ciaddr, yiaddr, siaddr, giaddr, chaddr, sname, file_) = fields
    return DhcpPacket(
        op=op, htype=htype, hlen=hlen, hops=hops, xid=xid, secs=secs, flags=flags,
        ciaddr=socket.inet_ntoa(ciaddr), yiaddr=socket.inet_ntoa(yiaddr),
        siaddr=socket.inet_ntoa(siaddr), giaddr=socket.inet_ntoa(giaddr),
        chaddr=chaddr[: min(hlen, 16)] if hlen else chaddr,
        sname=_cstring(sname), file=_cstring(file_),
        options=_parse_options(buf, _MIN_PACKET),
    )


# ---------- PXE request classification ----------

@dataclass(slots=True, frozen=True)
class PxeRequest:
    mac: str
    xid: int
    message_type: int
    architecture: int
    user_class: str
    class_id: str

    @property
    def message_name(self) -> str:
        return MESSAGE_TYPES.get(self.message_type, str(self.message_type))


def parse_pxe_request(packet: DhcpPacket) -> Optional[PxeRequest]:
    """Return the PXE fields of a boot request, or None if it is not one."""
    opts = packet.options
    required = (OPT_MESSAGE_TYPE, OPT_PARAM_REQUEST_LIST, OPT_CLASS_ID,
                OPT_CLIENT_ARCH, OPT_CLIENT_NDI)
    if packet.op != BOOTREQUEST or any(code not in opts for code in required):
        return None
    if len(opts[OPT_CLIENT_ARCH]) < 2 or not opts[OPT_MESSAGE_TYPE]:
        return None

    message_type = opts[OPT_MESSAGE_TYPE][0]
    if message_type not in (DHCPDISCOVER, DHCPREQUEST):
        return None

    class_id = opts[OPT_CLASS_ID].decode("ascii", "replace")
    if not class_id.startswith(PXE_CLASS):
        return None

    try:
        user_class = opts.get(OPT_USER_CLASS, b"").decode("utf-8")
    except UnicodeDecodeError:
        user_class = ""

    (architecture,) = struct.unpack("!H", opts[OPT_CLIENT_ARCH][:2])
    return PxeRequest(
        mac=packet.mac,
        xid=packet.xid,
        message_type=message_type,
        architecture=architecture,
        user_class=user_class,
        class_id=class_id,
    )


@dataclass(slots=True, frozen=True)
class Responder:
    """
    One answer rule. `architecture` and `user_class` are filters; None
    matches anything.
    """
    architecture: Optional[int]
    user_class: Optional[str]
    redirect_to: str
    boot_file: str

    def __post_init__(self) -> None:
        size = len(self.boot_file.encode("utf-8"))
        if not 0 < size <= 255:
            raise PacketError(f"Boot file name must be 1-255 bytes, got {size}")

    def matches(self, request: PxeRequest) -> bool:
        if self.architecture is not None and self.architecture != request.architecture:
            return False
        if self.user_class is not None and self.user_class != request.user_class:
            return False
        return True

    def describe(self) -> str:
        arch = "*" if self.architecture is None else architecture_name(self.architecture)
        klass = "*" if self.user_class is None else self.user_class
        return f"arch={arch} class={klass} -> {self.redirect_to} {self.boot_file}"


def build_offer(request_packet: DhcpPacket, responder: Responder) -> DhcpPacket:
    """Build the ProxyDHCP OFFER for a PXE request."""
    server = responder.redirect_to
    reply = DhcpPacket(
        op=BOOTREPLY,
        htype=request_packet.htype,
        hlen=request_packet.hlen,
        xid=request_packet.xid,
        flags=FLAG_BROADCAST,
        siaddr=server,
        chaddr=request_packet.chaddr,
        sname=server.encode("ascii"),
    )
    reply.options[OPT_MESSAGE_TYPE] = bytes([DHCPOFFER])
    reply.options[OPT_VENDOR_SPECIFIC] = PXE_VENDOR_OPTIONS
    reply.options[OPT_SERVER_ID] = _ip_bytes(server)
    reply.options[OPT_CLASS_ID] = PXE_CLASS.encode("ascii")
    reply.options[OPT_BOOTFILE_NAME] = responder.boot_file.encode("utf-8")
    return reply


@dataclass(slots=True, frozen=True)
class Answer:
    request: PxeRequest
    responder: Responder
    reply: DhcpPacket


class ProxyResponder:
    """Holds the ordered responder rules and turns requests into offers."""

    def __init__(self, responders: Iterable[Responder] = ()) -> None:
        self.responders: list[Responder] = list(responders)

    def add(self, responder: Responder) -> "ProxyResponder":
        self.responders.append(responder)
        return self

    def select(self, request: PxeRequest) -> Optional[Responder]:
        """Last matching rule wins."""
        chosen: Optional[Responder] = None
        for responder in self.responders:
            if responder.matches(request):
                chosen = responder
        return chosen

    def answer(self, packet: DhcpPacket) -> Optional[Answer]:
        request = parse_pxe_request(packet)
        if request is None:
            log.debug("Received non-PXE DHCP packet from %s", packet.mac)
            return None

        log.info(
            "DHCP PXEClient %s request from %s (%s)",
            request.message_name, request.mac, architecture_name(request.architecture),
        )
        responder = self.select(request)
        if responder is None:
            log.warning(
                "No responder for %s (%s, user class %r); not answering",
                request.mac, architecture_name(request.architecture), request.user_class,
            )
            return None

        log.info(
            "Responding to %s (%s,%s) with %s (%s)",
            request.mac, architecture_name(request.architecture), request.user_class,
            responder.redirect_to, responder.boot_file,
        )
        return Answer(request, responder, build_offer(packet, responder))

    def handle(self, packet: DhcpPacket) -> Optional[DhcpPacket]:
        answer = self.answer(packet)
        return answer.reply if answer else None


# ---------- UDP service ----------

class DhcpProxy:
    """UDP/67 listener feeding a ProxyResponder. Blocking; run it on a thread."""

    def __init__(
        self,
        responder: ProxyResponder,
        *,
        address: str = "0.0.0.0",
        port: int = DHCP_SERVER_PORT,
        reply_address: str = "255.255.255.255",
        reply_port: int = DHCP_CLIENT_PORT,
        on_response: Optional[Callable[[Answer], None]] = None,
        poll_interval: float = 0.5,
    ) -> None:
        self.responder = responder
        self.address = address
        self.port = port
        self.reply_to = (reply_address, reply_port)
        self.on_response = on_response
        self.poll_interval = poll_interval
        self._sock: Optional[socket.socket] = None
        self._stop = threading.Event()

    def bind(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind((self.address, self.port))
        except OSError:
            sock.close()
            raise
        sock.settimeout(self.poll_interval)
        self._sock = sock
        return sock

    @property
    def local_address(self) -> tuple[str, int] | None:
        return self._sock.getsockname() if self._sock else None

    def process(self, data: bytes) -> Optional[Answer]:
        """Decode one datagram and send the reply, if any."""
        try:
            packet = decode_packet(data)
        except PacketError as exc:
            log.debug("Dropping malformed DHCP datagram: %s", exc)
            return None

        answer = self.responder.answer(packet)
        if answer is None:
            return None
        if self._sock is not None:
            try:
                data = answer.reply.encode()
            except PacketError as exc:
                log.error("Cannot encode reply for %s: %s", answer.request.mac, exc)
                return None
            self._sock.sendto(data, self.reply_to)
        if self.on_response is not None:
            try:
                self.on_response(answer)
            except Exception as exc:  # noqa: BLE001
                log.warning("DHCP answer hook failed: %s", exc)
        return answer

    def serve_forever(self) -> None:
        sock = self._sock or self.bind()
        log.info("DHCP listening on %s:%d", *sock.getsockname())
        try:
            while not self._stop.is_set():
                try:
                    data = sock.recv(_MAX_DATAGRAM)
                except socket.timeout:
                    continue
                except OSError:
                    if self._stop.is_set():
                        break
                    raise
                self.process(data)
        finally:
            self._close()

    def stop(self) -> None:
        self._stop.set()

    def _close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
