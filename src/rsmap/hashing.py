"""Content digests used for change detection.

Every digest in rsmap goes through this module: whole files, and the exact
line span of each item. Nothing else (mtime, size) is ever compared.
"""

from __future__ import annotations

import hashlib

DIGEST_HEX_LENGTH = 64


def digest(data: bytes) -> str:
    """Return the SHA-256 hex digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def slice_lines(source: bytes, line_start: int, line_end: int) -> bytes:
    """Return lines ``line_start..=line_end`` (1-based) of ``source``.

    Lines are split on ``\\n`` and rejoined with ``\\n``, so the result does not
    carry the newline that terminates ``line_end``.
    """
    if line_start < 1 or line_end < line_start:
        raise ValueError(f"Invalid line range {line_start}-{line_end}")
    lines = source.split(b"\n")
    return b"\n".join(lines[line_start - 1 : line_end])


def digest_lines(source: bytes, line_start: int, line_end: int) -> str:
    """Digest exactly the lines an item spans."""
    return digest(slice_lines(source, line_start, line_end))


__all__ = ["DIGEST_HEX_LENGTH", "digest", "digest_lines", "slice_lines"]
