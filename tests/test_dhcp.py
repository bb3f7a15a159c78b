from __future__ import annotations

import socket
import threading

import pytest

from pxenet.errors import PacketError
from pxenet.net.dhcp import (
    BOOTREPLY,
    FLAG_BROADCAST,
    PXE_VENDOR_OPTIONS,
    DhcpPacket,
    DhcpProxy,
    ProxyResponder,
    Responder,
    decode_packet,
    parse_pxe_request,
)

from .helpers import MAC, pxe_request

SERVER = "10.0.0.5"
RULES = [
    Responder(7, None, SERVER, "ipxe.efi"),
    Responder(0, None, SERVER, "undionly.kpxe"),
    Responder(None, "iPXE", SERVER, f"http://{SERVER}/boot.ipxe"),
]


@pytest.fixture
def responder() -> ProxyResponder:
    return ProxyResponder(RULES)


def test_codec_is_stable() -> None:
    packet = pxe_request(user_class=b"iPXE")
    wire = packet.encode()
    assert wire[236:240] == b"\x63\x82\x53\x63"
    assert wire[-1] == 255
    decoded = decode_packet(wire)
    assert decoded == packet
    assert decoded.encode() == wire
    assert decoded.mac == "52:54:00:12:34:56"


def test_decode_rejects_garbage() -> None:
    with pytest.raises(PacketError, match="too short"):
        decode_packet(b"\x01" * 100)
    wire = bytearray(pxe_request().encode())
    wire[236] = 0
    with pytest.raises(PacketError, match="cookie"):
        decode_packet(bytes(wire))
    truncated = pxe_request().encode()[:-1] + b"\x3c\x20PXE"
    with pytest.raises(PacketError):
        decode_packet(truncated)


def test_pad_options_are_skipped() -> None:
    wire = pxe_request().encode()
    padded = wire[:240] + b"\x00\x00" + wire[240:]
    assert decode_packet(padded).options == pxe_request().options


def test_parse_pxe_request_fields() -> None:
    request = parse_pxe_request(pxe_request(arch=0, user_class=b"iPXE"))
    assert request.architecture == 0
    assert request.user_class == "iPXE"
    assert request.message_name == "Discover"


@pytest.mark.parametrize("packet", [
    pxe_request(drop=(94,)),
    pxe_request(drop=(55,)),
    pxe_request(drop=(93,)),
    pxe_request(class_id=b"MSFT 5.0"),
    pxe_request(message_type=7),
    DhcpPacket(op=BOOTREPLY, chaddr=MAC, options=dict(pxe_request().options)),
])
def test_non_pxe_packets_are_ignored(responder: ProxyResponder, packet: DhcpPacket) -> None:
    assert responder.handle(packet) is None


def test_efi_firmware_gets_ipxe_efi(responder: ProxyResponder) -> None:
    request = pxe_request(arch=7)
    reply = responder.handle(request)

    assert reply.op == BOOTREPLY
    assert reply.flags & FLAG_BROADCAST
    assert reply.xid == request.xid
    assert reply.chaddr == request.chaddr
    assert reply.siaddr == SERVER
    assert reply.sname == SERVER.encode()
    assert reply.options == {
        53: bytes([2]),
        43: PXE_VENDOR_OPTIONS,
        54: socket.inet_aton(SERVER),
        60: b"PXEClient",
        67: b"ipxe.efi",
    }
    assert PXE_VENDOR_OPTIONS == bytes([6, 8, 0, 0, 0, 0, 0, 0, 0, 0, 255])


def test_bios_firmware_gets_undionly(responder: ProxyResponder) -> None:
    reply = responder.handle(pxe_request(arch=0, message_type=3))
    assert reply.options[67] == b"undionly.kpxe"


def test_last_matching_responder_wins(responder: ProxyResponder) -> None:
    reply = responder.handle(pxe_request(arch=7, user_class=b"iPXE"))
    assert reply.options[67] == b"http://10.0.0.5/boot.ipxe"


def test_no_matching_responder_means_no_reply(responder: ProxyResponder) -> None:
    assert responder.handle(pxe_request(arch=9)) is None


def test_proxy_over_udp() -> None:
    client = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    client.bind(("127.0.0.1", 0))
    client.settimeout(5)
    answers = []

    proxy = DhcpProxy(
        ProxyResponder(RULES),
        address="127.0.0.1",
        port=0,
        reply_address="127.0.0.1",
        reply_port=client.getsockname()[1],
        on_response=answers.append,
        poll_interval=0.05,
    )
    proxy.bind()
    thread = threading.Thread(target=proxy.serve_forever, daemon=True)
    thread.start()
    try:
        client.sendto(b"not dhcp", proxy.local_address)
        client.sendto(pxe_request(arch=0).encode(), proxy.local_address)
        data, _ = client.recvfrom(1500)
    finally:
        proxy.stop()
        thread.join(5)
        client.close()

    reply = decode_packet(data)
    assert reply.options[67] == b"undionly.kpxe"
    assert [a.request.mac for a in answers] == ["52:54:00:12:34:56"]
    assert not thread.is_alive()


@pytest.mark.parametrize("boot_file", ["", "http://10.0.0.5/" + "x" * 250])
def test_boot_file_must_fit_in_one_option(boot_file: str) -> None:
    with pytest.raises(PacketError, match="1-255 bytes"):
        Responder(None, "iPXE", SERVER, boot_file)


def test_longest_boot_file_still_encodes() -> None:
    responder = ProxyResponder([Responder(None, "iPXE", SERVER, "x" * 255)])
    reply = responder.handle(pxe_request(user_class=b"iPXE"))
    assert decode_packet(reply.encode()).options[67] == b"x" * 255
