"""Configuration loading from CLI args, env vars, and optional YAML file."""

import logging
import os
from dataclasses import dataclass
from enum import Enum

import yaml

from logto.errors import ConfigError

logger = logging.getLogger(__name__)

FRAMING_MODES = ("line", "capacity")
SYSLOG_FACILITIES = (
    "user", "daemon", "kern", "local0", "local1", "local2", "local3",
    "local4", "local5", "local6", "local7",
)
DEFAULT_NETCONSOLE_PORT = 6666
MIN_BUFFER_SIZE = 4
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Destination(Enum):
    KMSG = "kmsg"
    NETCONSOLE = "netconsole"
    SYSLOG = "syslog"


@dataclass(frozen=True)
class Config:
    destination: Destination
    command: tuple[str, ...]
    name: str | None = None
    netconsole_host: str | None = None
    netconsole_port: int = DEFAULT_NETCONSOLE_PORT
    kmsg_path: str = "/dev/kmsg"
    buffer_size: int = 4096
    framing: str = "line"
    default_priority: int = 6
    syslog_facility: str = "user"
    announce: bool = False
    reap_timeout: float = 5.0
    log_level: str = "WARNING"

    @property
    def direct_wiring(self) -> bool:
        """Kmsg without a name needs no per-record rewriting, so the child
        can write to the device itself."""
        return self.destination is Destination.KMSG and self.name is None


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def parse_target(value: str) -> tuple[str, int]:
    """Split ``host[:port]`` (or ``[v6addr][:port]``) into host and port."""
    value = value.strip()
    if not value:
        raise ConfigError("netconsole target must not be empty")

    if value.startswith("["):
        host, sep, rest = value[1:].partition("]")
        if not sep:
            raise ConfigError(f"malformed netconsole target: {value!r}")
        port = rest[1:] if rest.startswith(":") else ""
    elif value.count(":") == 1:
        host, _, port = value.partition(":")
    else:
        host, port = value, ""

    if not host:
        raise ConfigError(f"netconsole target has no host: {value!r}")
    if not port:
        return host, DEFAULT_NETCONSOLE_PORT
    try:
        port_num = int(port)
    except ValueError:
        raise ConfigError(f"invalid netconsole port: {port!r}") from None
    if not 1 <= port_num <= 65535:
        raise ConfigError(f"netconsole port out of range: {port_num}")
    return host, port_num


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"could not read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def _layered(cli_value, env_key: str, yaml_data: dict, yaml_key: str, default):
    """Resolve one setting: CLI beats env, env beats YAML, YAML beats default."""
    if cli_value is not None:
        return cli_value
    if env_key in os.environ:
        return os.environ[env_key]
    if yaml_key in yaml_data:
        return yaml_data[yaml_key]
    return default


def _select_destination(args) -> Destination:
    chosen = [
        dest for flag, dest in (
            (args.kmsg, Destination.KMSG),
            (args.netconsole, Destination.NETCONSOLE),
            (args.syslog, Destination.SYSLOG),
        ) if flag
    ]
    if not chosen:
        raise ConfigError("no destination selected, but one is required")
    if len(chosen) > 1:
        raise ConfigError("only one destination at a time is supported")
    return chosen[0]


def _resolve_name(args, command: tuple[str, ...]) -> str | None:
    if args.name is not None and args.auto_name:
        raise ConfigError("use either -p or -P, not both")
    if args.auto_name:
        return os.path.basename(command[0].rstrip("/")) or command[0]
    if args.name is not None and not args.name:
        raise ConfigError("name must not be empty")
    return args.name


def load_config(cli_args, yaml_data: dict) -> Config:
    """Build Config from CLI args, env vars, and parsed YAML data."""
    destination = _select_destination(cli_args)

    command = tuple(cli_args.command or ())
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        raise ConfigError("no program given to run")

    name = _resolve_name(cli_args, command)

    target = _layered(cli_args.target, "LOGTO_NETCONSOLE", yaml_data, "netconsole", None)
    netconsole_host, netconsole_port = (None, DEFAULT_NETCONSOLE_PORT)
    if target:
        netconsole_host, netconsole_port = parse_target(str(target))
    if destination is Destination.NETCONSOLE and netconsole_host is None:
        raise ConfigError("netconsole destination requires a target (-t host[:port])")

    try:
        buffer_size = int(_layered(cli_args.buffer_size, "LOGTO_BUFFER_SIZE",
                                   yaml_data, "buffer_size", Config.buffer_size))
        default_priority = int(_layered(None, "LOGTO_DEFAULT_PRIORITY", yaml_data,
                                        "default_priority", Config.default_priority))
        reap_timeout = float(_layered(None, "LOGTO_REAP_TIMEOUT", yaml_data,
                                      "reap_timeout", Config.reap_timeout))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid numeric setting: {exc}") from exc

    if buffer_size < MIN_BUFFER_SIZE:
        raise ConfigError(f"buffer size must be at least {MIN_BUFFER_SIZE} bytes")
    if not 0 <= default_priority <= 7:
        raise ConfigError(f"default priority must be 0-7, got {default_priority}")
    if reap_timeout < 0:
        raise ConfigError("reap timeout must not be negative")

    framing = str(_layered(cli_args.framing, "LOGTO_FRAMING", yaml_data,
                           "framing", Config.framing)).lower()
    if framing not in FRAMING_MODES:
        raise ConfigError(f"unknown framing {framing!r}, expected one of {FRAMING_MODES}")

    facility = str(_layered(None, "LOGTO_SYSLOG_FACILITY", yaml_data,
                            "syslog_facility", Config.syslog_facility)).lower()
    if facility not in SYSLOG_FACILITIES:
        raise ConfigError(f"unknown syslog facility {facility!r}")

    announce = _parse_bool(_layered(True if cli_args.announce else None,
                                    "LOGTO_ANNOUNCE", yaml_data, "announce", False))

    log_level = "DEBUG" if cli_args.verbose else str(
        _layered(None, "LOGTO_LOG_LEVEL", yaml_data, "log_level", Config.log_level)
    ).upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"unknown log level {log_level!r}")

    return Config(
        destination=destination,
        command=command,
        name=name,
        netconsole_host=netconsole_host,
        netconsole_port=netconsole_port,
        kmsg_path=str(_layered(None, "LOGTO_KMSG_PATH", yaml_data, "kmsg_path",
                               Config.kmsg_path)),
        buffer_size=buffer_size,
        framing=framing,
        default_priority=default_priority,
        syslog_facility=facility,
        announce=announce,
        reap_timeout=reap_timeout,
        log_level=log_level,
    )
