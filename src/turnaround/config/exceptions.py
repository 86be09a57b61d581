"""Configuration errors."""

from __future__ import annotations

from pathlib import Path


class ConfigError(Exception):
    """Raised when a configuration layer cannot be read, merged, or validated.

    Attributes:
        source: File the offending data came from, when known.
        keys: Dotted setting paths rejected by validation.
    """

    def __init__(
        self,
        message: str,
        *,
        source: Path | None = None,
        keys: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message)
        self.source = source
        self.keys = keys

    def __str__(self) -> str:
        message = super().__str__()
        if self.source is not None:
            return f"{self.source}: {message}"
        return message

    def details(self) -> dict[str, object]:
        """Return structured context for JSON error payloads."""
        data: dict[str, object] = {}
        if self.source is not None:
            data["source"] = str(self.source)
        if self.keys:
            data["keys"] = list(self.keys)
        return data
