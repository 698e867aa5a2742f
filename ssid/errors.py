# ssid/errors.py
from __future__ import annotations


class SSIDError(ValueError):
    """Base class for everything the filter raises on bad input."""


class ConfigurationError(SSIDError):
    pass


class DataError(SSIDError):
    def __init__(self, index: int, msg: str) -> None:
        super().__init__(f"sample {index}: {msg}")
        self.index = int(index)
