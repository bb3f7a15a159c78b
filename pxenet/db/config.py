#!/usr/bin/env python3
# pxenet/db/config.py
from __future__ import annotations

"""
Configuration loader (stdlib-only).

Precedence (low -> high):
  1) Built-in defaults
  2) Files in CWD: .env, config.ini, config.json, config.toml
  3) Environment variables (recognized keys only; PXENET_<KEY> beats <KEY>)

Validation:
  - SERVER_ADDRESS / BIND_ADDRESS: IPv4 addresses
  - HTTP_PORT / TFTP_PORT / DHCP_PORT: int in 1..65535
  - HTTP_ROOT / TFTP_ROOT / STATE_DIR: normalized paths (no creation here)
  - CATALOG_FILE / TLS_CERT_FILE / TLS_KEY_FILE / LOG_FILE_PATH: None or path
  - SCRIPT_NAME: plain file name, no slashes
  - BASE_URL: None (derived from address, port and TLS) or http(s) URL
  - ENABLE_DHCP / ENABLE_TFTP / ENABLE_HTTP / ENABLE_TLS: bool
  - RESTART_DELAY: float >= 0
  - LOG_LEVEL: one of {'DEBUG','INFO','WARNING','ERROR','CRITICAL'}
  - TIMEOUT: int >= 1
"""

from dataclasses import dataclass, field
from typing import Any, Mapping
from pathlib import Path
import configparser
import ipaddress
import json
import os
import re
import tomllib

from pxenet.errors import ConfigError

# ---------- defaults ----------

DEFAULTS: dict[str, Any] = {
    "SERVER_ADDRESS": "10.0.0.5",
    "BIND_ADDRESS": "0.0.0.0",
    "HTTP_PORT": 80,
    "TFTP_PORT": 69,
    "DHCP_PORT": 67,
    "HTTP_ROOT": "http_root",
    "TFTP_ROOT": "tftp_root",
    "STATE_DIR": "state",
    "CATALOG_FILE": None,           # None -> built-in catalog
    "SCRIPT_NAME": "boot.ipxe",
    "BASE_URL": None,               # None -> derived from SERVER_ADDRESS/HTTP_PORT
    "ENABLE_DHCP": True,
    "ENABLE_TFTP": True,
    "ENABLE_HTTP": True,
    "ENABLE_TLS": False,
    "TLS_CERT_FILE": None,          # None -> self-signed in STATE_DIR
    "TLS_KEY_FILE": None,
    "RESTART_DELAY": 5,
    "LOG_LEVEL": "INFO",
    "LOG_FILE_PATH": None,
    "TIMEOUT": 5,
}

ENV_PREFIX = "PXENET_"
# option 67 (boot file name) is a single DHCP option
MAX_BOOTFILE_LEN = 255


def _write_config_file_toml(cfg_map: Mapping[str, Any], *, path: Path | None = None) -> Path:
    """
    Persist a flat TOML config (defaults to ./config.toml).
    None values are skipped. Returns the path written.
    """
    out = (path or (Path.cwd() / "config.toml")).resolve()

    def _toml_scalar(v: Any) -> str:
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, (int, float)):
            return str(v)
        s = str(v).replace("\\", "\\\\").replace('"', '\\"')
        return f'"{s}"'

    lines = [f"{k} = {_toml_scalar(cfg_map[k])}"
             for k in sorted(cfg_map) if cfg_map[k] is not None]
    try:
        out.write_text("\n".join(lines) + "\n", encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to write config at {out}: {exc}") from exc
    return out


def write_default_config(path: Path | None = None, **overrides: Any) -> Path:
    raw = dict(DEFAULTS)
    raw.update({k.upper(): v for k, v in overrides.items()})
    _validate_and_build(raw)
    return _write_config_file_toml(raw, path=path)


# ---------- data model ----------

@dataclass(frozen=True)
class AppConfig:
    server_address: str
    bind_address: str
    http_port: int
    tftp_port: int
    dhcp_port: int

    http_root: Path
    tftp_root: Path
    state_dir: Path
    catalog_file: Path | None
    script_name: str
    base_url: str

    enable_dhcp: bool
    enable_tftp: bool
    enable_http: bool
    enable_tls: bool
    tls_cert_file: Path | None
    tls_key_file: Path | None

    restart_delay: float
    log_level: str
    log_file_path: Path | None
    timeout: int

    # Unrecognized keys preserved for debugging
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def scheme(self) -> str:
        return "https" if self.enable_tls else "http"

    @property
    def script_url(self) -> str:
        return f"{self.base_url}/{self.script_name}"

    @property
    def database_path(self) -> Path:
        return self.state_dir / "clients.db"


# ---------- file loaders (stdlib) ----------

def _load_env_file(path: Path) -> dict[str, str]:
    """Very small .env parser: KEY=VALUE, supports quotes; ignores comments/blank lines."""
    out: dict[str, str] = {}
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return out

    line_re = re.compile(r"""^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*?)\s*$""")
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        m = line_re.match(line)
        if not m:
            continue
        k, v = m.group(1), m.group(2)
        if len(v) >= 2 and v[0] == v[-1] and v[0] in "'\"":
            v = v[1:-1]
        out[k] = v
    return out


def _load_ini_file(path: Path) -> dict[str, str]:
    if not path.is_file():
        return {}
    cfg = configparser.ConfigParser()
    try:
        cfg.read(path, encoding="utf-8")
    except configparser.Error as exc:
        raise ConfigError(f"Invalid INI in {path}: {exc}") from exc
    flat: dict[str, str] = {}
    for sec in cfg.sections():
        for k, v in cfg.items(sec):
            flat[k.upper()] = v
    return flat


def _load_json_file(path: Path) -> dict[str, Any]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {path}: {exc}") from exc


def _load_toml_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        return {}
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc


def _flatten_mapping(obj: Any, prefix: str = "") -> dict[str, Any]:
    """
    Flatten nested dicts to UPPER_SNAKE keys.
    Example: {'tls': {'cert_file': 'a.pem'}} -> {'TLS_CERT_FILE': 'a.pem'}
    """
    flat: dict[str, Any] = {}
    if isinstance(obj, Mapping):
        for k, v in obj.items():
            key = f"{prefix}_{k}" if prefix else str(k)
            if isinstance(v, Mapping):
                flat.update(_flatten_mapping(v, key))
            else:
                flat[str(key).upper()] = v
    return flat


def _find_config_files(cwd: Path | None = None) -> list[Path]:
    base = cwd or Path.cwd()
    return [
        base / ".env",
        base / "config.ini",
        base / "config.json",
        base / "config.toml",
    ]


# ---------- normalization & coercion ----------

_BOOL_TRUE = {"1", "true", "yes", "y", "on"}
_BOOL_FALSE = {"0", "false", "no", "n", "off"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _as_bool(val: Any) -> bool:
    if isinstance(val, bool):
        return val
    s = str(val).strip().lower()
    if s in _BOOL_TRUE:
        return True
    if s in _BOOL_FALSE:
        return False
    raise ConfigError(f"Expected boolean, got: {val!r}")


def _as_int(val: Any) -> int:
    if isinstance(val, int) and not isinstance(val, bool):
        return val
    try:
        return int(str(val).strip())
    except ValueError as exc:
        raise ConfigError(f"Expected integer, got: {val!r}") from exc


def _as_float(val: Any) -> float:
    if isinstance(val, (int, float)) and not isinstance(val, bool):
        return float(val)
    try:
        return float(str(val).strip())
    except ValueError as exc:
        raise ConfigError(f"Expected number, got: {val!r}") from exc


def _as_opt_str(val: Any) -> str | None:
    return None if val is None or str(val).strip().lower() in {"", "none"} else str(val)


def _as_log_level(val: Any) -> str:
    lv = _as_opt_str(val)
    if lv is None:
        return DEFAULTS["LOG_LEVEL"]
    up = lv.upper()
    if up not in _LOG_LEVELS:
        raise ConfigError(f"LOG_LEVEL must be one of {sorted(_LOG_LEVELS)}, got {lv!r}")
    return up


def _as_ipv4(name: str, val: Any) -> str:
    try:
        return str(ipaddress.IPv4Address(str(val).strip()))
    except ValueError as exc:
        raise ConfigError(f"{name} must be an IPv4 address, got {val!r}") from exc


def _as_port(name: str, val: Any) -> int:
    port = _as_int(val)
    if not 1 <= port <= 65535:
        raise ConfigError(f"{name} must be in 1..65535, got {port}")
    return port


def _as_path(val: Any, base: Path) -> Path:
    p = Path(os.path.expandvars(os.path.expanduser(str(val))))
    return (p if p.is_absolute() else base / p).resolve()


def _as_opt_path(val: Any, base: Path) -> Path | None:
    v = _as_opt_str(val)
    return None if v is None else _as_path(v, base)


def derive_base_url(address: str, port: int, tls: bool) -> str:
    scheme = "https" if tls else "http"
    default_port = 443 if tls else 80
    return f"{scheme}://{address}" if port == default_port else f"{scheme}://{address}:{port}"


# ---------- merge & load ----------

def _normalize_keys(d: Mapping[str, Any]) -> dict[str, Any]:
    return {str(k).upper(): v for k, v in d.items()}


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in DEFAULTS:
        if key in environ:
            out[key] = environ[key]
    for key in DEFAULTS:
        if ENV_PREFIX + key in environ:
            out[key] = environ[ENV_PREFIX + key]
    return out


def _merge_sources(cwd: Path | None = None, environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    merged: dict[str, Any] = dict(DEFAULTS)

    for file in _find_config_files(cwd):
        if file.name == ".env":
            merged.update(_normalize_keys(_load_env_file(file)))
        elif file.suffix == ".ini":
            merged.update(_normalize_keys(_load_ini_file(file)))
        elif file.suffix == ".json":
            merged.update(_normalize_keys(_flatten_mapping(_load_json_file(file))))
        elif file.suffix == ".toml":
            merged.update(_normalize_keys(_flatten_mapping(_load_toml_file(file))))

    merged.update(_env_overrides(os.environ if environ is None else environ))
    return merged


# ---------- validation ----------

def _validate_and_build(config: Mapping[str, Any], *, cwd: Path | None = None) -> AppConfig:
    base = (cwd or Path.cwd()).resolve()

    def get(key: str) -> Any:
        return config.get(key, DEFAULTS[key])

    server_address = _as_ipv4("SERVER_ADDRESS", get("SERVER_ADDRESS"))
    bind_address = _as_ipv4("BIND_ADDRESS", get("BIND_ADDRESS"))
    http_port = _as_port("HTTP_PORT", get("HTTP_PORT"))
    tftp_port = _as_port("TFTP_PORT", get("TFTP_PORT"))
    dhcp_port = _as_port("DHCP_PORT", get("DHCP_PORT"))

    http_root = _as_path(get("HTTP_ROOT"), base)
    tftp_root = _as_path(get("TFTP_ROOT"), base)
    state_dir = _as_path(get("STATE_DIR"), base)
    catalog_file = _as_opt_path(get("CATALOG_FILE"), base)

    script_name = _as_opt_str(get("SCRIPT_NAME")) or DEFAULTS["SCRIPT_NAME"]
    if "/" in script_name or "\\" in script_name or script_name in {".", ".."}:
        raise ConfigError(f"SCRIPT_NAME must be a plain file name, got {script_name!r}")

    enable_tls = _as_bool(get("ENABLE_TLS"))
    base_url = _as_opt_str(get("BASE_URL"))
    if base_url is None:
        base_url = derive_base_url(server_address, http_port, enable_tls)
    elif not re.match(r"^https?://[^/\s]+", base_url):
        raise ConfigError(f"BASE_URL must be an http(s) URL, got {base_url!r}")
    base_url = base_url.rstrip("/")
    url_size = len(f"{base_url}/{script_name}".encode("utf-8"))
    if url_size > MAX_BOOTFILE_LEN:
        raise ConfigError(f"BASE_URL/SCRIPT_NAME is {url_size} bytes; "
                          f"DHCP option 67 holds at most {MAX_BOOTFILE_LEN}")

    restart_delay = _as_float(get("RESTART_DELAY"))
    if restart_delay < 0:
        raise ConfigError("RESTART_DELAY must be >= 0")
    timeout = _as_int(get("TIMEOUT"))
    if timeout < 1:
        raise ConfigError("TIMEOUT must be >= 1")

    tls_cert_file = _as_opt_path(get("TLS_CERT_FILE"), base)
    tls_key_file = _as_opt_path(get("TLS_KEY_FILE"), base)
    if (tls_cert_file is None) != (tls_key_file is None):
        raise ConfigError("TLS_CERT_FILE and TLS_KEY_FILE must be set together")

    extra = {k: v for k, v in config.items() if k not in DEFAULTS}

    return AppConfig(
        server_address=server_address,
        bind_address=bind_address,
        http_port=http_port,
        tftp_port=tftp_port,
        dhcp_port=dhcp_port,
        http_root=http_root,
        tftp_root=tftp_root,
        state_dir=state_dir,
        catalog_file=catalog_file,
        script_name=script_name,
        base_url=base_url,
        enable_dhcp=_as_bool(get("ENABLE_DHCP")),
        enable_tftp=_as_bool(get("ENABLE_TFTP")),
        enable_http=_as_bool(get("ENABLE_HTTP")),
        enable_tls=enable_tls,
        tls_cert_file=tls_cert_file,
        tls_key_file=tls_key_file,
        restart_delay=restart_delay,
        log_level=_as_log_level(get("LOG_LEVEL")),
        log_file_path=_as_opt_path(get("LOG_FILE_PATH"), base),
        timeout=timeout,
        extra=extra,
    )


def load_config(
    *,
    cwd: Path | None = None,
    environ: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """
    Load configuration from defaults, files in `cwd` and the environment.
    `overrides` (e.g. CLI options) are applied last. Raises ConfigError.
    """
    merged = _merge_sources(cwd, environ)
    if overrides:
        merged.update({k.upper(): v for k, v in overrides.items() if v is not None})
    return _validate_and_build(merged, cwd=cwd)
