"""Whole-tree change detection for the watched site inputs.

``fingerprint`` reduces the state of the posts, static and templates trees
plus the site config file to one 64-bit integer. Each observed fact (a file,
a symlink, a directory entry, or a sentinel for a missing or misplaced target)
is hashed on its own and folded into an order-independent accumulator, so the
result does not depend on the order the filesystem lists directory entries.
"""
from __future__ import annotations

import enum
import hashlib
import os
import stat
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import WatchPathError
from .utils import validate_rel_path

MAX_CONTENT_HASH_BYTES = 64 * 1024
READ_CHUNK_BYTES = 8192
GOLDEN_RATIO_64 = 0x9E3779B97F4A7C15
MASK_64 = (1 << 64) - 1


@dataclass
class WatchTargets:
    posts_dir_path: str = "posts"
    static_dir_path: str = "static"
    templates_dir_path: str = "templates"
    site_config_path: str = "site.yml"


class Sentinel(enum.IntEnum):
    MISSING_DIR = 0
    PRESENT_DIR = 1
    MISSING_FILE = 2
    UNEXPECTED_DIR = 3
    UNEXPECTED_FILE = 4
    VANISHED = 5


class EntryKind(enum.IntEnum):
    FILE = 0
    DIRECTORY = 1
    SYMLINK = 2
    OTHER = 3


class FactHasher:
    """BLAKE2b-64 over tagged, NUL-separated fields."""

    def __init__(self, tag: str) -> None:
        self._h = hashlib.blake2b(digest_size=8)
        self._h.update(tag.encode("utf-8"))

    def field(self, value: bytes | str) -> "FactHasher":
        if isinstance(value, str):
            value = os.fsencode(value)
        self._h.update(b"\0")
        self._h.update(value)
        return self

    def number(self, value: int) -> "FactHasher":
        self._h.update(value.to_bytes(16, "little", signed=True))
        return self

    def final(self) -> int:
        return int.from_bytes(self._h.digest(), "little")


@dataclass
class FingerprintAcc:
    xor: int = 0
    sum: int = 0
    count: int = 0

    def add(self, h: int) -> None:
        self.xor ^= h
        self.sum = (self.sum + h * GOLDEN_RATIO_64) & MASK_64
        self.count = (self.count + 1) & MASK_64

    def final(self) -> int:
        digest = hashlib.blake2b(struct.pack("<QQQ", self.xor, self.sum, self.count), digest_size=8)
        return int.from_bytes(digest.digest(), "little")


def hash_sentinel(path: str, kind: Sentinel) -> int:
    return FactHasher("sentinel").field(path).number(kind).final()


def hash_content(path: str | os.PathLike) -> int:
    h = hashlib.blake2b(b"content\0", digest_size=8)
    remaining = MAX_CONTENT_HASH_BYTES
    with open(path, "rb") as handle:
        while remaining > 0:
            chunk = handle.read(min(READ_CHUNK_BYTES, remaining))
            if not chunk:
                break
            h.update(chunk)
            remaining -= len(chunk)
    return int.from_bytes(h.digest(), "little")


def _stat_fields(hasher: FactHasher, st: os.stat_result) -> FactHasher:
    return (
        hasher.number(stat.S_IFMT(st.st_mode))
        .number(st.st_ino)
        .number(st.st_size)
        .number(st.st_mtime_ns)
        .number(st.st_ctime_ns)
    )


def hash_tree_file(
    root_path: str, rel_dir: str, name: str, st: os.stat_result, content_hash: Optional[int]
) -> int:
    hasher = FactHasher("tree-file").field(root_path).field(rel_dir).field(name)
    _stat_fields(hasher, st)
    if content_hash is not None:
        hasher.number(content_hash)
    return hasher.final()


def hash_file(path: str, st: os.stat_result, content_hash: Optional[int]) -> int:
    hasher = _stat_fields(FactHasher("file").field(path), st)
    if content_hash is not None:
        hasher.number(content_hash)
    return hasher.final()


def hash_symlink(root_path: str, rel_dir: str, name: str, target: Optional[bytes]) -> int:
    hasher = FactHasher("sym-link").field(root_path).field(rel_dir).field(name)
    hasher.field(target if target is not None else b"unreadable")
    return hasher.final()


def hash_dir_entry(root_path: str, rel_dir: str, name: str, kind: EntryKind) -> int:
    return FactHasher("entry").field(root_path).field(rel_dir).field(name).number(kind).final()


def _entry_kind(entry: os.DirEntry) -> EntryKind:
    if entry.is_symlink():
        return EntryKind.SYMLINK
    if entry.is_dir(follow_symlinks=False):
        return EntryKind.DIRECTORY
    if entry.is_file(follow_symlinks=False):
        return EntryKind.FILE
    return EntryKind.OTHER


def check_watch_dir(base_dir: Path, dir_path: str) -> Path:
    """Resolve a watched directory and make sure it stays inside ``base_dir``."""
    base_resolved = base_dir.resolve()
    resolved = (base_resolved / dir_path).resolve()
    if resolved == base_resolved:
        raise WatchPathError("watch_dir", "IsBaseDir", dir_path)
    if not resolved.is_relative_to(base_resolved):
        raise WatchPathError("watch_dir", "EscapesBaseDir", dir_path)
    return resolved


def add_file_fingerprint(base_dir: Path, path: str, acc: FingerprintAcc) -> None:
    full = base_dir / path
    try:
        st = full.stat()
    except FileNotFoundError:
        acc.add(hash_sentinel(path, Sentinel.MISSING_FILE))
        return
    if stat.S_ISDIR(st.st_mode):
        acc.add(hash_sentinel(path, Sentinel.UNEXPECTED_DIR))
        return
    content_hash = None
    if stat.S_ISREG(st.st_mode) and st.st_size <= MAX_CONTENT_HASH_BYTES:
        content_hash = hash_content(full)
    acc.add(hash_file(path, st, content_hash))


def add_dir_tree_fingerprint(base_dir: Path, dir_path: str, acc: FingerprintAcc) -> None:
    full = base_dir / dir_path
    if not os.path.lexists(full):
        acc.add(hash_sentinel(dir_path, Sentinel.MISSING_DIR))
        return
    root = check_watch_dir(base_dir, dir_path)
    if not root.is_dir():
        acc.add(hash_sentinel(dir_path, Sentinel.UNEXPECTED_FILE))
        return
    acc.add(hash_sentinel(dir_path, Sentinel.PRESENT_DIR))

    stack = [""]
    while stack:
        rel_dir = stack.pop()
        current = root / rel_dir if rel_dir else root
        try:
            with os.scandir(current) as it:
                entries = list(it)
        except (FileNotFoundError, NotADirectoryError):
            acc.add(hash_sentinel(f"{dir_path}/{rel_dir}", Sentinel.VANISHED))
            continue

        for entry in entries:
            kind = _entry_kind(entry)
            try:
                if kind is EntryKind.FILE:
                    st = entry.stat(follow_symlinks=False)
                    content_hash = None
                    if st.st_size <= MAX_CONTENT_HASH_BYTES:
                        content_hash = hash_content(entry.path)
                    acc.add(hash_tree_file(dir_path, rel_dir, entry.name, st, content_hash))
                elif kind is EntryKind.SYMLINK:
                    try:
                        target = os.fsencode(os.readlink(entry.path))
                    except OSError:
                        target = None
                    acc.add(hash_symlink(dir_path, rel_dir, entry.name, target))
                else:
                    acc.add(hash_dir_entry(dir_path, rel_dir, entry.name, kind))
            except FileNotFoundError:
                acc.add(hash_sentinel(f"{dir_path}/{rel_dir}/{entry.name}", Sentinel.VANISHED))
                continue

            if kind is EntryKind.DIRECTORY:
                stack.append(os.path.join(rel_dir, entry.name) if rel_dir else entry.name)


def fingerprint(base_dir: Path, targets: Optional[WatchTargets] = None) -> int:
    targets = targets or WatchTargets()
    base_dir = Path(base_dir)
    validate_rel_path(targets.posts_dir_path, "posts_dir", WatchPathError)
    validate_rel_path(targets.static_dir_path, "static_dir", WatchPathError)
    validate_rel_path(targets.templates_dir_path, "templates_dir", WatchPathError)
    validate_rel_path(targets.site_config_path, "config_file", WatchPathError)

    acc = FingerprintAcc()
    add_dir_tree_fingerprint(base_dir, targets.posts_dir_path, acc)
    add_dir_tree_fingerprint(base_dir, targets.static_dir_path, acc)
    add_dir_tree_fingerprint(base_dir, targets.templates_dir_path, acc)
    add_file_fingerprint(base_dir, targets.site_config_path, acc)
    return acc.final()
