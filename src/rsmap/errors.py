"""Error codes and exception types for rsmap."""

from __future__ import annotations

CONFIG_001 = "CONFIG_001"  # Config file not found
CONFIG_002 = "CONFIG_002"  # Config file unreadable or not valid YAML
CONFIG_003 = "CONFIG_003"  # Config values fail validation
META_001 = "META_001"  # No Cargo.toml at the project path
META_002 = "META_002"  # Manifest unreadable or malformed
IO_001 = "IO_001"  # Source file unreadable
IO_002 = "IO_002"  # Output file unwritable
PARSE_001 = "PARSE_001"  # Source file has syntax errors
RESOLVE_001 = "RESOLVE_001"  # Submodule skipped during resolution
SERDE_001 = "SERDE_001"  # Snapshot or annotations failed to decode
SERDE_002 = "SERDE_002"  # Snapshot or annotations failed to encode


class RsmapError(RuntimeError):
    """Base exception for all rsmap errors."""

    code: str = "RSMAP_UNKNOWN"

    def __init__(self, code: str | None, message: str) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class ConfigError(RsmapError):
    code = CONFIG_001


class MetadataError(RsmapError):
    code = META_001


class IndexIOError(RsmapError):
    code = IO_001


class ParseError(RsmapError):
    code = PARSE_001

    def __init__(self, code: str | None, message: str, line: int | None = None) -> None:
        super().__init__(code, message)
        self.line = line


class SerializationError(RsmapError):
    code = SERDE_001


__all__ = [
    "CONFIG_001",
    "CONFIG_002",
    "CONFIG_003",
    "IO_001",
    "IO_002",
    "META_001",
    "META_002",
    "PARSE_001",
    "RESOLVE_001",
    "SERDE_001",
    "SERDE_002",
    "ConfigError",
    "IndexIOError",
    "MetadataError",
    "ParseError",
    "RsmapError",
    "SerializationError",
]
