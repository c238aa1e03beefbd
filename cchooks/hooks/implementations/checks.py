"""Rule-based diff checks and helpers for parsing Claude's JSON answers."""

import json
import re
from collections.abc import Iterator
from fnmatch import fnmatch
from typing import Any, NamedTuple

from ..models import HookIssue, Severity


class AddedLine(NamedTuple):
    file: str
    line: int
    text: str


class DiffRule(NamedTuple):
    pattern: re.Pattern[str]
    severity: Severity
    description: str


DIFF_RULES: tuple[DiffRule, ...] = (
    DiffRule(
        re.compile(r"^(<{7}|>{7})( |$)|^={7}$"),
        Severity.HIGH,
        "Unresolved merge conflict marker",
    ),
    DiffRule(
        re.compile(r"-----BEGIN (RSA |EC |DSA |OPENSSH )?PRIVATE KEY-----"),
        Severity.CRITICAL,
        "Private key committed",
    ),
    DiffRule(
        re.compile(r"\bAKIA[0-9A-Z]{16}\b"),
        Severity.CRITICAL,
        "AWS access key id committed",
    ),
    DiffRule(
        re.compile(
            r"(?i)\b(api[_-]?key|secret|passw(or)?d|token)\b\s*[:=]\s*['\"][^'\"\s]{8,}['\"]"
        ),
        Severity.HIGH,
        "Possible hard-coded credential",
    ),
    DiffRule(
        re.compile(r"^\s*(console\.log\(|debugger;|breakpoint\(\)|import pdb\b|pdb\.set_trace\(\))"),
        Severity.LOW,
        "Debugging statement left in code",
    ),
)

_HUNK_HEADER = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")
_FILE_HEADER = re.compile(r"^diff --git a/(.+?) b/(.+)$")


def matches_any(path: str, patterns: list[str]) -> bool:
    return any(fnmatch(path, pattern) for pattern in patterns)


def filter_files(
    files: list[str], include: list[str], exclude: list[str]
) -> list[str]:
    """Apply include (empty means everything) and exclude glob patterns."""
    return [
        f
        for f in files
        if (not include or matches_any(f, include)) and not matches_any(f, exclude)
    ]


def split_diff(diff: str) -> dict[str, str]:
    """Split a unified diff into per-file sections keyed by new path."""
    sections: dict[str, list[str]] = {}
    current: list[str] | None = None
    for line in diff.splitlines():
        header = _FILE_HEADER.match(line)
        if header:
            current = sections.setdefault(header.group(2), [])
        if current is not None:
            current.append(line)
    return {path: "\n".join(lines) for path, lines in sections.items()}


def filter_diff(diff: str, include: list[str], exclude: list[str]) -> str:
    sections = split_diff(diff)
    if not sections:
        return diff
    kept = filter_files(list(sections), include, exclude)
    return "\n".join(sections[path] for path in kept)


def added_lines(diff: str) -> Iterator[AddedLine]:
    """Yield every added line of a unified diff with its new line number."""
    current_file = ""
    line_no = 0
    for line in diff.splitlines():
        if line.startswith("+++ "):
            target = line[4:].strip()
            current_file = target[2:] if target.startswith("b/") else target
            continue
        if line.startswith("--- "):
            continue
        hunk = _HUNK_HEADER.match(line)
        if hunk:
            line_no = int(hunk.group(1))
            continue
        if line.startswith("+"):
            yield AddedLine(current_file, line_no, line[1:])
            line_no += 1
        elif line.startswith(" "):
            line_no += 1


def scan_diff(diff: str) -> list[HookIssue]:
    """Run :data:`DIFF_RULES` over the added lines of a diff."""
    issues = []
    for added in added_lines(diff):
        for rule in DIFF_RULES:
            if rule.pattern.search(added.text):
                issues.append(
                    HookIssue(
                        severity=rule.severity,
                        description=rule.description,
                        file=added.file,
                        line=added.line,
                    )
                )
    return issues


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "\n... (truncated)"


_JSON_FENCE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)


def extract_json(text: str) -> dict[str, Any] | None:
    """Pull a JSON object out of a model answer, fenced or bare."""
    candidates = [m.group(1) for m in _JSON_FENCE.finditer(text)]
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None


def coerce_severity(value: Any) -> Severity:
    try:
        return Severity(str(value).lower())
    except ValueError:
        return Severity.MEDIUM


def parse_issues(items: Any) -> list[HookIssue]:
    """Convert the ``issues`` array of a model answer into :class:`HookIssue`."""
    if not isinstance(items, list):
        return []
    issues = []
    for item in items:
        if not isinstance(item, dict) or not item.get("description"):
            continue
        line = item.get("line", "")
        issues.append(
            HookIssue(
                severity=coerce_severity(item.get("severity")),
                description=str(item["description"]),
                file=str(item.get("file") or ""),
                line=line if isinstance(line, int) else str(line or ""),
            )
        )
    return issues
