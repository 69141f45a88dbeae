from __future__ import annotations

import re
from pathlib import Path

from .errors import PathSafetyError

WINDOWS_DRIVE_RE = re.compile(r"^[A-Za-z]:")


def validate_rel_path(path: str, role: str, error_cls: type[PathSafetyError] = PathSafetyError) -> str:
    """Reject configured paths that could point outside the project tree.

    Checks run in a fixed order so the reported reason is stable.
    """
    if not path:
        raise error_cls(role, "PathEmpty", path)
    if path == ".":
        raise error_cls(role, "PathIsDot", path)
    if path.startswith("/") or WINDOWS_DRIVE_RE.match(path):
        raise error_cls(role, "PathMustBeRelative", path)
    if "\x00" in path:
        raise error_cls(role, "PathContainsNul", path)
    if "\\" in path:
        raise error_cls(role, "PathContainsBackslash", path)
    if ".." in path.split("/"):
        raise error_cls(role, "PathContainsDotDot", path)
    return path


def is_same_or_within(path: Path, other: Path) -> bool:
    return path == other or path.is_relative_to(other)


def paths_overlap(a: Path, b: Path) -> bool:
    return is_same_or_within(a, b) or is_same_or_within(b, a)


def check_output_containment(
    base_dir: Path, out_dir: Path, posts_dir: Path, static_dir: Path, strict: bool = False
) -> Path:
    """Resolve ``out_dir`` and make sure cleaning it cannot touch anything else.

    All arguments except ``base_dir`` may be relative to it. Returns the
    resolved output directory.
    """
    base_resolved = base_dir.resolve()
    out_resolved = (base_resolved / out_dir).resolve(strict=strict)
    posts_resolved = (base_resolved / posts_dir).resolve()
    static_resolved = (base_resolved / static_dir).resolve()

    if out_resolved == base_resolved:
        raise PathSafetyError("out_dir", "IsBaseDir", out_dir)
    if not out_resolved.is_relative_to(base_resolved):
        raise PathSafetyError("out_dir", "EscapesBaseDir", out_dir)
    if paths_overlap(out_resolved, posts_resolved):
        raise PathSafetyError("out_dir", "OverlapsPostsDir", out_dir)
    if paths_overlap(out_resolved, static_resolved):
        raise PathSafetyError("out_dir", "OverlapsStaticDir", out_dir)
    return out_resolved


def join_url(base: str, path: str) -> str:
    base = base.rstrip("/")
    path = path.lstrip("/")
    if not path:
        return base
    return f"{base}/{path}"
