"""Glob matching and positional line diffs used by the file tools."""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass

MAX_REPORTED_DIFFERENCES = 50

_DOUBLE_STAR = "\x00"


def glob_to_regex(pattern: str) -> re.Pattern:
    """Translate ``**``/``*`` glob syntax into a case-insensitive regex.

    ``.`` is escaped, ``**`` crosses directories, ``*`` does not.  Other
    regex metacharacters pass through untouched, so a pattern such as
    ``"(main"`` raises :class:`re.error`.
    """
    translated = (
        pattern.replace(".", r"\.")
        .replace("**", _DOUBLE_STAR)
        .replace("*", "[^/]*")
        .replace(_DOUBLE_STAR, ".*")
    )
    return re.compile(translated, re.IGNORECASE)


def matches_glob(path: str, pattern: str) -> bool:
    """Match a project-relative path against a glob pattern.

    Patterns without ``/`` are matched against the file name only.  If
    the pattern is not a valid regex after translation, fall back to
    substring containment with ``*`` stripped.
    """
    target = path if "/" in pattern else posixpath.basename(path)
    try:
        regex = glob_to_regex(pattern)
    except re.error:
        needle = pattern.replace("*", "").lower()
        return needle in target.lower()
    return regex.fullmatch(target) is not None


@dataclass
class DiffStats:
    added: int = 0
    removed: int = 0

    def __str__(self) -> str:
        return f"(+{self.added} -{self.removed})"


@dataclass
class LineDifference:
    line: int
    old: str | None
    new: str | None


def _positional_pairs(old: str, new: str):
    old_lines = old.splitlines()
    new_lines = new.splitlines()
    for i in range(max(len(old_lines), len(new_lines))):
        a = old_lines[i] if i < len(old_lines) else None
        b = new_lines[i] if i < len(new_lines) else None
        if a != b:
            yield i + 1, a, b


def line_diff(
    old: str, new: str, limit: int = MAX_REPORTED_DIFFERENCES,
) -> tuple[list[LineDifference], int]:
    """Compare two texts line by line at the same positions.

    This is not an LCS diff: an inserted line shows every following
    line as changed.  Returns at most *limit* differences plus the total
    number found.
    """
    differences = []
    total = 0
    for line, a, b in _positional_pairs(old, new):
        total += 1
        if len(differences) < limit:
            differences.append(LineDifference(line=line, old=a, new=b))
    return differences, total


def diff_stats(old: str | None, new: str | None) -> DiffStats:
    stats = DiffStats()
    for _, a, b in _positional_pairs(old or "", new or ""):
        if a is not None:
            stats.removed += 1
        if b is not None:
            stats.added += 1
    return stats


def format_line_diff(differences: list[LineDifference], total: int) -> str:
    if total == 0:
        return "No differences"
    rows = []
    for d in differences:
        rows.append(f"Line {d.line}:")
        if d.old is not None:
            rows.append(f"- {d.old}")
        if d.new is not None:
            rows.append(f"+ {d.new}")
    if total > len(differences):
        rows.append(f"... {total - len(differences)} more differences")
    return "\n".join(rows)
