from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Optional

from .errors import (
    InvalidBool,
    InvalidDate,
    InvalidEncoding,
    InvalidSyntax,
    MissingCloseDelimiter,
    MissingDate,
    MissingOpenDelimiter,
    MissingTitle,
)

UTF8_BOM = b"\xef\xbb\xbf"
QUOTES = "\"'"
ASCII_WHITESPACE = " \t\n\r\x0b\x0c"
SLUG_SEPARATOR_RE = re.compile(rb"[^a-z0-9]+")
LIST_MARKER_RE = re.compile(r"^(?P<indent>[ \t]*)(?:[-+*]|\d+[.)])\s+")
FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(`{3,}|~{3,})")

WEEKDAYS = ("Sat", "Sun", "Mon", "Tue", "Wed", "Thu", "Fri")
MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def is_leap_year(year: int) -> bool:
    if year % 400 == 0:
        return True
    if year % 100 == 0:
        return False
    return year % 4 == 0


def days_in_month(year: int, month: int) -> int:
    if month in (1, 3, 5, 7, 8, 10, 12):
        return 31
    if month in (4, 6, 9, 11):
        return 30
    if month == 2:
        return 29 if is_leap_year(year) else 28
    raise ValueError(f"month out of range: {month}")


@dataclass(frozen=True, order=True)
class CalendarDate:
    year: int
    month: int
    day: int

    @classmethod
    def parse_iso8601(cls, text: str) -> "CalendarDate":
        if len(text) != 10 or text[4] != "-" or text[7] != "-":
            raise InvalidDate(f"expected YYYY-MM-DD, got {text!r}")
        parts = (text[0:4], text[5:7], text[8:10])
        if not all(part.isascii() and part.isdigit() for part in parts):
            raise InvalidDate(f"non-numeric date field in {text!r}")
        year, month, day = (int(part) for part in parts)
        if not 1 <= month <= 12:
            raise InvalidDate(f"month out of range in {text!r}")
        if not 1 <= day <= days_in_month(year, month):
            raise InvalidDate(f"day out of range in {text!r}")
        return cls(year, month, day)

    def day_of_week(self) -> str:
        """Abbreviated English weekday, computed with Zeller's congruence."""
        month, year = self.month, self.year
        if month < 3:
            month += 12
            year -= 1
        k = year % 100
        j = year // 100
        h = (self.day + (13 * (month + 1)) // 5 + k + k // 4 + j // 4 + 5 * j) % 7
        return WEEKDAYS[h]

    def rfc822(self) -> str:
        return f"{self.day_of_week()}, {self.day:02d} {MONTHS[self.month - 1]} {self.year:04d} 00:00:00 +0000"

    def isoformat(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


@dataclass
class FrontMatter:
    title: str
    date: CalendarDate
    date_raw: str
    description: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    draft: bool = False
    slug: Optional[str] = None


@dataclass
class ParsedPost:
    front_matter: FrontMatter
    body: bytes


class LineState(enum.Enum):
    NORMAL = "normal"
    TAG_LIST = "tag_list"


def _is_delimiter_line(line: bytes) -> bool:
    return line.rstrip(b"\r").strip(b" \t") == b"---"


def split_front_matter(raw: bytes) -> tuple[bytes, bytes]:
    """Split ``raw`` into the metadata block and the body.

    The opening ``---`` must be the first line (after an optional BOM); the
    first later ``---`` line closes the block. Neither part includes the
    delimiter lines.
    """
    start = len(UTF8_BOM) if raw.startswith(UTF8_BOM) else 0
    size = len(raw)

    first_end = raw.find(b"\n", start)
    if first_end == -1:
        first_end = size
    if not _is_delimiter_line(raw[start:first_end]):
        raise MissingOpenDelimiter("document must start with a '---' line", line=1)

    meta_start = first_end + 1 if first_end < size else size
    pos = meta_start
    while pos <= size:
        line_end = raw.find(b"\n", pos)
        if line_end == -1:
            line_end = size
        if _is_delimiter_line(raw[pos:line_end]):
            body_start = line_end + 1 if line_end < size else size
            return raw[meta_start:pos], raw[body_start:]
        if line_end == size:
            break
        pos = line_end + 1

    raise MissingCloseDelimiter("no closing '---' line")


def _find_closing_quote(value: str, quote: str) -> Optional[int]:
    for i in range(1, len(value)):
        if value[i] == quote and value[i - 1] != "\\":
            return i
    return None


def strip_inline_comment(value: str) -> str:
    trimmed = value.rstrip(" \t")
    if not trimmed:
        return trimmed

    if trimmed[0] in QUOTES:
        end = _find_closing_quote(trimmed, trimmed[0])
        if end is None:
            return trimmed
        after = trimmed[end + 1 :].lstrip(" \t")
        if not after or after.startswith("#"):
            return trimmed[: end + 1]
        return trimmed

    hash_at = trimmed.find("#")
    if hash_at == -1:
        return trimmed
    if hash_at == 0:
        return ""
    if trimmed[hash_at - 1] not in ASCII_WHITESPACE:
        return trimmed
    return trimmed[:hash_at].rstrip(" \t")


def parse_scalar(value: str) -> str:
    trimmed = value.strip(" \t")
    if len(trimmed) >= 2 and trimmed[0] in QUOTES and trimmed[-1] == trimmed[0]:
        return trimmed[1:-1]
    return trimmed


def parse_inline_list(value: str) -> list[str]:
    trimmed = value.strip(" \t")
    if len(trimmed) < 2 or not (trimmed.startswith("[") and trimmed.endswith("]")):
        raise InvalidSyntax(f"malformed inline list {value!r}")
    inner = trimmed[1:-1].strip(" \t")
    if not inner:
        return []
    items = [parse_scalar(item) for item in inner.split(",")]
    return [item for item in items if item]


def parse_bool(value: str) -> bool:
    lowered = value.lower() if value.isascii() else value
    if lowered in {"true", "yes"}:
        return True
    if lowered in {"false", "no"}:
        return False
    raise InvalidBool(f"expected true/false/yes/no, got {value!r}")


def parse_front_matter(text: str) -> FrontMatter:
    title: Optional[str] = None
    date_raw: Optional[str] = None
    description: Optional[str] = None
    draft = False
    slug: Optional[str] = None
    tags: list[str] = []

    state = LineState.NORMAL
    for lineno, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line.rstrip("\r").strip(" \t")
        if not line or line.startswith("#"):
            continue

        if state is LineState.TAG_LIST:
            if line.startswith("-"):
                tags.append(parse_scalar(strip_inline_comment(line[1:].lstrip(" \t"))))
                continue
            # Any other line closes the list and is handled as a normal line.
            state = LineState.NORMAL

        colon = line.find(":")
        if colon == -1:
            raise InvalidSyntax(f"expected 'key: value', got {line!r}", line=lineno)
        key = line[:colon].rstrip(" \t")
        value = strip_inline_comment(line[colon + 1 :].lstrip(" \t"))

        if not value:
            if key == "tags":
                state = LineState.TAG_LIST
                continue
            raise InvalidSyntax(f"missing value for {key!r}", line=lineno)

        if key == "tags":
            if value.startswith("["):
                try:
                    tags.extend(parse_inline_list(value))
                except InvalidSyntax as exc:
                    exc.line = lineno
                    raise
            else:
                tags.append(parse_scalar(value))
            continue

        scalar = parse_scalar(value)
        if key == "title":
            title = scalar
        elif key == "date":
            date_raw = scalar
        elif key == "description":
            description = scalar
        elif key == "draft":
            try:
                draft = parse_bool(scalar)
            except InvalidBool as exc:
                exc.line = lineno
                raise
        elif key == "slug":
            slug = scalar

    if title is None or not title.strip():
        raise MissingTitle("front matter has no title")
    if date_raw is None:
        raise MissingDate("front matter has no date")
    date = CalendarDate.parse_iso8601(date_raw)

    return FrontMatter(
        title=title,
        date=date,
        date_raw=date_raw,
        description=description,
        tags=tags,
        draft=draft,
        slug=slug,
    )


def parse_document(raw: bytes | str) -> ParsedPost:
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    meta, body = split_front_matter(raw)
    try:
        meta_text = meta.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidEncoding(f"front matter is not valid UTF-8 ({exc.reason})") from None
    return ParsedPost(front_matter=parse_front_matter(meta_text), body=body)


def slugify(value: str | bytes) -> str:
    data = value.encode("utf-8") if isinstance(value, str) else bytes(value)
    slug = SLUG_SEPARATOR_RE.sub(b"-", data.lower()).strip(b"-")
    return slug.decode("ascii") or "post"


def normalize_list_spacing(text: str) -> str:
    """Insert a blank line before top-level lists that directly follow a paragraph.

    Python-Markdown only starts a list after a blank line; this matches the
    CommonMark behaviour authors expect. Fenced code is left untouched.
    """
    out: list[str] = []
    in_fence = False
    fence_marker = ""
    for line in text.splitlines():
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(2)
            if not in_fence:
                in_fence = True
                fence_marker = marker[0] * 3
            elif marker.startswith(fence_marker):
                in_fence = False
                fence_marker = ""
            out.append(line)
            continue
        if in_fence:
            out.append(line)
            continue
        list_match = LIST_MARKER_RE.match(line)
        if list_match and not list_match.group("indent"):
            if out and out[-1].strip() and not LIST_MARKER_RE.match(out[-1]):
                out.append("")
        out.append(line)
    return "\n".join(out)
