import re
from dataclasses import dataclass

CONTEXT_RADIUS = 3
MAX_WINDOW_LINES = 7
MAX_LINE_CHARS = 400
ELLIPSIS = "…"
REDACTION_MARKER = '"<redacted>"'

_SECRET_ASSIGNMENT_RE = re.compile(r'((?:api[_-]?key|token|password|secret)\s*[:=]\s*)"[^"]+"', re.IGNORECASE)


class LineOutOfRangeError(ValueError):
    pass


@dataclass(frozen=True)
class ContextWindow:
    start_line: int
    end_line: int
    lines: list[str]


def split_lines(text: str) -> list[str]:
    lines = text.replace("\r\n", "\n").split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def redact_line(line: str) -> str:
    return _SECRET_ASSIGNMENT_RE.sub(lambda m: m.group(1) + REDACTION_MARKER, line)


def truncate_line(line: str) -> str:
    if len(line) <= MAX_LINE_CHARS:
        return line
    return line[:MAX_LINE_CHARS] + ELLIPSIS


def extract_window(lines: list[str], line_number: int) -> ContextWindow:
    """Return up to three lines either side of the 1-based ``line_number``, redacted."""
    if line_number < 1 or line_number > len(lines):
        raise LineOutOfRangeError(f"Line {line_number} is outside the source file (1-{len(lines)}).")
    start = max(1, line_number - CONTEXT_RADIUS)
    end = min(len(lines), line_number + CONTEXT_RADIUS)
    excerpt = [truncate_line(redact_line(line)) for line in lines[start - 1 : end]][:MAX_WINDOW_LINES]
    return ContextWindow(start_line=start, end_line=start + len(excerpt) - 1, lines=excerpt)
