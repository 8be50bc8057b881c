"""Daemon runtime components."""

from lsrd.runtime.config import DaemonConfig, LimitsConfig, load_daemon_config, parse_daemon_config
from lsrd.runtime.daemon import RouterDaemon
from lsrd.runtime.transport import UdpTransport

__all__ = [
    "DaemonConfig",
    "LimitsConfig",
    "RouterDaemon",
    "UdpTransport",
    "load_daemon_config",
    "parse_daemon_config",
]
