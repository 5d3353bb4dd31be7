"""BLE transport layer."""

from .connection import BootloaderScanner, MonocleConnection

__all__ = ["BootloaderScanner", "MonocleConnection"]
