#!/usr/bin/env python3
# pxenet/net/tls.py
from __future__ import annotations

"""Self-signed certificate for the HTTPS boot endpoint (cryptography)."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
import ipaddress
import logging
import os
import ssl

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

log = logging.getLogger(__name__)

CERT_NAME = "pxenet-cert.pem"
KEY_NAME = "pxenet-key.pem"
VALID_DAYS = 825


def generate_self_signed(address: str, cert_path: Path, key_path: Path) -> tuple[Path, Path]:
    """Write an EC P-256 key and a certificate for `address` (IP SAN)."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([
        x509.NameAttribute(NameOID.COMMON_NAME, address),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "pxenet"),
    ])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + timedelta(days=VALID_DAYS))
        .add_extension(
            x509.SubjectAlternativeName([x509.IPAddress(ipaddress.ip_address(address))]),
            critical=False,
        )
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )

    cert_path.parent.mkdir(parents=True, exist_ok=True)
    key_path.parent.mkdir(parents=True, exist_ok=True)
    key_path.write_bytes(key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ))
    try:
        os.chmod(key_path, 0o600)
    except OSError:
        pass
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    log.info("Generated self-signed certificate for %s at %s", address, cert_path)
    return cert_path, key_path


def ensure_certificate(
    address: str,
    state_dir: Path,
    cert_file: Path | None = None,
    key_file: Path | None = None,
) -> tuple[Path, Path]:
    """Return configured cert/key, or a self-signed pair kept in `state_dir`."""
    if cert_file is not None and key_file is not None:
        for p in (cert_file, key_file):
            if not p.is_file():
                raise FileNotFoundError(f"TLS file not found: {p}")
        return cert_file, key_file

    cert_path = state_dir / CERT_NAME
    key_path = state_dir / KEY_NAME
    if cert_path.is_file() and key_path.is_file():
        return cert_path, key_path
    return generate_self_signed(address, cert_path, key_path)


def server_context(cert_file: Path, key_file: Path) -> ssl.SSLContext:
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    ctx.load_cert_chain(certfile=str(cert_file), keyfile=str(key_file))
    return ctx
