from __future__ import annotations


class LsrdError(Exception):
    """Base class for every error raised by the daemon."""


class TransportError(LsrdError):
    """Socket setup failed; the daemon must not start."""


class ConfigError(LsrdError, ValueError):
    """Configuration is unreadable or invalid; the daemon must not start."""


class MessageDecodeError(LsrdError, ValueError):
    """Datagram is not a well-formed control message."""
