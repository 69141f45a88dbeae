from __future__ import annotations

from pathlib import Path

import pytest


def post_text(title: str, date: str, extra: str = "", body: str = "hi\n") -> str:
    return f"---\ntitle: {title}\ndate: {date}\n{extra}---\n{body}"


@pytest.fixture
def write_post(tmp_path: Path):
    posts = tmp_path / "posts"
    posts.mkdir(exist_ok=True)

    def _write(name: str, title: str, date: str, extra: str = "", body: str = "hi\n") -> Path:
        path = posts / name
        path.write_text(post_text(title, date, extra, body), encoding="utf-8")
        return path

    return _write
