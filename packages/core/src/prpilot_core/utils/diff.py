from __future__ import annotations

import re

MAX_DIFF_CHARS = 15000
TRUNCATION_MARKER = "\n\n... [diff truncated due to size] ..."

_DIFF_GIT_RE = re.compile(r"^diff --git a/(.+?) b/", re.MULTILINE)
_FILE_HEADER_RE = re.compile(r"^(?:\+\+\+|---) [ab]/(.+?)$", re.MULTILINE)


def truncate_diff(diff: str, max_chars: int = MAX_DIFF_CHARS) -> str:
    """Cut an oversized diff at the last line boundary before ``max_chars``.

    The result always ends with TRUNCATION_MARKER when anything was dropped,
    and never contains a partial line: if the first line alone exceeds the
    budget, only the marker is returned.
    """
    if not diff or len(diff) <= max_chars:
        return diff

    head = diff[:max_chars]
    last_newline = head.rfind("\n")
    if last_newline == -1:
        return TRUNCATION_MARKER.lstrip("\n")
    return head[:last_newline] + TRUNCATION_MARKER


def extract_files_from_diff(diff: str) -> list[str]:
    """Return the file paths touched by a unified diff, in first-seen order."""
    files: list[str] = []
    for match in _DIFF_GIT_RE.finditer(diff or ""):
        if match.group(1) not in files:
            files.append(match.group(1))
    if files:
        return files

    # Plain `diff -u` output has no "diff --git" headers, only ---/+++ lines.
    for match in _FILE_HEADER_RE.finditer(diff or ""):
        if match.group(1) not in files:
            files.append(match.group(1))
    return files
