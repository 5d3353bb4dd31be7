"""Exceptions raised by the noa package."""

from __future__ import annotations


class NoaError(Exception):
    """Base class for all noa errors."""


class TransportError(NoaError):
    """BLE link failure (disconnect, failed write).

    Recovered by the transport's own reconnect policy; the session simply
    drops back to the disconnected state.
    """


class BLEConnectionError(TransportError):
    """Connection could not be established or a write failed."""


class BLETimeoutError(TransportError):
    """BLE operation timed out."""


class ProtocolError(NoaError):
    """Device reported an error or replied with something unexpected."""


class InvalidResponseError(ProtocolError):
    """Device data could not be parsed."""


class DataIntegrityError(NoaError):
    """Captured audio or image data is unusable. Never retried."""


class ServiceError(NoaError):
    """An upstream AI service request failed. Never retried."""
