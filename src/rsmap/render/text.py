"""Small markdown formatting helpers shared by the renderers."""

from __future__ import annotations

from rsmap.model import PATH_SEPARATOR


def tree_entry(path: str, description: str, depth: int) -> str:
    """``- name`` indented two spaces per level, with an optional description."""
    indent = "  " * depth
    short_name = path.rsplit(PATH_SEPARATOR, 1)[-1]
    if not description:
        return f"{indent}- {short_name}"
    return f"{indent}- {short_name} — {description}"


def first_line(text: str | None) -> str:
    if not text:
        return ""
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def aligned_rows(rows: list[tuple[str, str]], separator: str) -> list[str]:
    """Left-align the first column so separators line up."""
    width = max((len(left) for left, _ in rows), default=0)
    return [f"{left:<{width}}{separator}{right}" for left, right in rows]


def section(title: str, lines: list[str], placeholder: str) -> str:
    body = "\n".join(lines) if lines else placeholder
    return f"## {title}\n\n{body}\n\n"
