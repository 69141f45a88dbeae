from __future__ import annotations

import os
import re
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Optional

import markdown

from .content import normalize_list_spacing
from .errors import FeedError, RenderError

RESERVED_NAMES = {".gitignore"}


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# mkstemp creates files as 0600; published pages get the usual 0666 & ~umask.
DEFAULT_FILE_MODE = 0o666 & ~_current_umask()

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "sane_lists", "codehilite"]
MARKDOWN_EXTENSION_CONFIGS = {"codehilite": {"guess_lang": False}}

HTML_ESCAPES = {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#39;"}
XML_ESCAPES = {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&apos;"}
HTML_ESCAPE_RE = re.compile(r"[&<>\"']")
PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")
# Complement of the XML 1.0 Char production.
XML_INVALID_CHAR_RE = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")

_renderer: Optional[markdown.Markdown] = None
_renderer_lock = threading.Lock()


def get_renderer() -> markdown.Markdown:
    global _renderer
    with _renderer_lock:
        if _renderer is None:
            _renderer = markdown.Markdown(
                extensions=MARKDOWN_EXTENSIONS,
                extension_configs=MARKDOWN_EXTENSION_CONFIGS,
            )
        return _renderer


def render_markdown(body: bytes | str) -> str:
    """Render a Markdown body to an HTML fragment."""
    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RenderError(f"InvalidUtf8: body is not valid UTF-8 at byte {exc.start}") from None
    md = get_renderer()
    with _renderer_lock:
        html_text = md.reset().convert(normalize_list_spacing(body))
    return html_text


def escape_html(text: str) -> str:
    return HTML_ESCAPE_RE.sub(lambda m: HTML_ESCAPES[m.group(0)], text)


def escape_xml(text: str) -> str:
    bad = XML_INVALID_CHAR_RE.search(text)
    if bad:
        raise FeedError(f"character U+{ord(bad.group(0)):04X} is not allowed in XML: {text!r}")
    return HTML_ESCAPE_RE.sub(lambda m: XML_ESCAPES[m.group(0)], text)


def render_template(template: str, **context: str) -> str:
    # Single pass, so placeholders inside substituted values stay literal.
    return PLACEHOLDER_RE.sub(lambda m: context.get(m.group(1), m.group(0)), template)


def write_bytes(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` so readers see either the old or the new file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, DEFAULT_FILE_MODE)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def write_text(path: Path, text: str) -> None:
    write_bytes(path, text.encode("utf-8"))


def clean_output_dir(output_dir: Path) -> None:
    """Remove everything in ``output_dir`` except reserved files.

    Symlinks are unlinked, never followed.
    """
    with os.scandir(output_dir) as entries:
        for entry in entries:
            if entry.name in RESERVED_NAMES:
                continue
            if entry.is_dir(follow_symlinks=False):
                shutil.rmtree(entry.path)
            else:
                os.unlink(entry.path)


def copy_static(static_dir: Path, output_dir: Path) -> None:
    if not static_dir.is_dir():
        return
    shutil.copytree(
        static_dir,
        output_dir,
        ignore=shutil.ignore_patterns(*RESERVED_NAMES),
        dirs_exist_ok=True,
    )
