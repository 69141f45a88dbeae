from __future__ import annotations

import itertools
import os
import sys

import pytest

from mdblog.errors import WatchPathError
from mdblog.fingerprint import (
    MAX_CONTENT_HASH_BYTES,
    FingerprintAcc,
    Sentinel,
    WatchTargets,
    fingerprint,
    hash_content,
    hash_sentinel,
)

needs_symlinks = pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")

POST = "---\ntitle: A\ndate: 2025-12-01\n---\n"


def make_site(base):
    (base / "posts").mkdir()
    (base / "static").mkdir()
    (base / "site.yml").write_text("title: x\n", encoding="utf-8")
    (base / "posts" / "a.md").write_text(POST + "hi", encoding="utf-8")
    (base / "static" / "style.css").write_text("a", encoding="utf-8")


def test_fingerprint_is_stable_without_changes(tmp_path):
    make_site(tmp_path)
    assert fingerprint(tmp_path) == fingerprint(tmp_path)


def test_fingerprint_is_a_64_bit_value(tmp_path):
    value = fingerprint(tmp_path)
    assert 0 <= value < 2**64


def test_fingerprint_changes_when_content_changes(tmp_path):
    make_site(tmp_path)
    a = fingerprint(tmp_path)
    (tmp_path / "posts" / "a.md").write_text(POST + "hello", encoding="utf-8")
    b = fingerprint(tmp_path)
    assert a != b


def test_fingerprint_changes_when_a_watched_directory_appears(tmp_path):
    a = fingerprint(tmp_path)
    (tmp_path / "templates").mkdir()
    b = fingerprint(tmp_path)
    assert a != b


def test_fingerprint_changes_when_nested_file_is_added(tmp_path):
    make_site(tmp_path)
    (tmp_path / "static" / "img").mkdir()
    a = fingerprint(tmp_path)
    (tmp_path / "static" / "img" / "logo.svg").write_text("<svg/>", encoding="utf-8")
    b = fingerprint(tmp_path)
    assert a != b


def test_fingerprint_changes_when_config_appears_or_changes(tmp_path):
    a = fingerprint(tmp_path)
    (tmp_path / "site.yml").write_text("title: x\n", encoding="utf-8")
    b = fingerprint(tmp_path)
    (tmp_path / "site.yml").write_text("title: y\n", encoding="utf-8")
    c = fingerprint(tmp_path)
    assert len({a, b, c}) == 3


def test_wrong_kind_targets_are_fingerprinted_not_errors(tmp_path):
    a = fingerprint(tmp_path)
    (tmp_path / "site.yml").mkdir()
    (tmp_path / "posts").write_text("not a directory", encoding="utf-8")
    b = fingerprint(tmp_path)
    assert a != b


def test_custom_targets(tmp_path):
    targets = WatchTargets(posts_dir_path="content", site_config_path="site.toml")
    a = fingerprint(tmp_path, targets)
    (tmp_path / "content").mkdir()
    assert fingerprint(tmp_path, targets) != a
    # Directories outside the targets are not watched.
    b = fingerprint(tmp_path, targets)
    (tmp_path / "posts").mkdir()
    assert fingerprint(tmp_path, targets) == b


@needs_symlinks
def test_fingerprint_changes_when_a_symlink_target_changes(tmp_path):
    posts = tmp_path / "posts"
    posts.mkdir()
    (posts / "a.md").write_text("a\n", encoding="utf-8")
    (posts / "b.md").write_text("b\n", encoding="utf-8")

    os.symlink("a.md", posts / "link.md")
    a = fingerprint(tmp_path)

    os.unlink(posts / "link.md")
    os.symlink("b.md", posts / "link.md")
    b = fingerprint(tmp_path)

    assert a != b


@needs_symlinks
def test_dangling_symlinks_inside_tree_are_fine(tmp_path):
    posts = tmp_path / "posts"
    posts.mkdir()
    os.symlink("missing.md", posts / "broken.md")
    assert fingerprint(tmp_path) == fingerprint(tmp_path)


@needs_symlinks
def test_symlinked_watch_dir_escaping_base_is_rejected(tmp_path):
    base = tmp_path / "site"
    base.mkdir()
    (tmp_path / "elsewhere").mkdir()
    os.symlink(tmp_path / "elsewhere", base / "posts", target_is_directory=True)

    with pytest.raises(WatchPathError) as info:
        fingerprint(base)
    assert info.value.code == "WatchDirEscapesBaseDir"


@needs_symlinks
def test_symlinked_watch_dir_pointing_at_base_is_rejected(tmp_path):
    os.symlink(".", tmp_path / "static", target_is_directory=True)

    with pytest.raises(WatchPathError) as info:
        fingerprint(tmp_path)
    assert info.value.code == "WatchDirIsBaseDir"


@pytest.mark.parametrize(
    "targets, code",
    [
        (WatchTargets(posts_dir_path="."), "PostsDirPathIsDot"),
        (WatchTargets(static_dir_path="../static"), "StaticDirPathContainsDotDot"),
        (WatchTargets(templates_dir_path="/etc"), "TemplatesDirPathMustBeRelative"),
        (WatchTargets(site_config_path=""), "ConfigFilePathEmpty"),
    ],
)
def test_unsafe_watch_targets_are_rejected(tmp_path, targets, code):
    with pytest.raises(WatchPathError) as info:
        fingerprint(tmp_path, targets)
    assert info.value.code == code


def test_accumulator_is_order_independent():
    facts = [hash_sentinel(f"path-{i}", Sentinel.PRESENT_DIR) for i in range(5)]
    results = set()
    for order in itertools.permutations(facts):
        acc = FingerprintAcc()
        for h in order:
            acc.add(h)
        results.add(acc.final())
    assert len(results) == 1


def test_accumulator_counts_repeated_facts():
    h = hash_sentinel("posts", Sentinel.MISSING_DIR)
    once = FingerprintAcc()
    once.add(h)
    thrice = FingerprintAcc()
    for _ in range(3):
        thrice.add(h)
    # XOR alone cannot tell one copy from three.
    assert once.xor == thrice.xor
    assert once.final() != thrice.final()


def test_sentinels_depend_on_path_and_kind():
    assert hash_sentinel("posts", Sentinel.MISSING_DIR) != hash_sentinel("posts", Sentinel.PRESENT_DIR)
    assert hash_sentinel("posts", Sentinel.MISSING_DIR) != hash_sentinel("static", Sentinel.MISSING_DIR)


def test_content_hash_only_reads_up_to_the_ceiling(tmp_path):
    head = b"x" * MAX_CONTENT_HASH_BYTES
    a = tmp_path / "a.bin"
    b = tmp_path / "b.bin"
    a.write_bytes(head + b"tail-one")
    b.write_bytes(head + b"tail-two")
    assert hash_content(a) == hash_content(b)
    b.write_bytes(b"y" + head[1:])
    assert hash_content(a) != hash_content(b)
