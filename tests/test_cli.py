from __future__ import annotations

import re

import pytest

from mdblog.cli import main


def test_build_command(tmp_path, write_post, capsys):
    write_post("a.md", "A", "2025-12-01")
    (tmp_path / "site.yml").write_text("title: CLI Blog\ndist_dir: public\n", encoding="utf-8")

    code = main(["--base-dir", str(tmp_path), "build"])

    assert code == 0
    out = capsys.readouterr().out
    assert "Generated site in public/" in out
    assert "Build completed in" in out
    index = (tmp_path / "public" / "index.html").read_text(encoding="utf-8")
    assert "CLI Blog" in index


def test_build_failure_exits_with_error(tmp_path, write_post, capsys):
    write_post("bad.md", "Bad", "2025-13-01")

    code = main(["--base-dir", str(tmp_path), "build"])

    assert code == 1
    err = capsys.readouterr().err
    assert err.startswith("error: posts/bad.md: InvalidDate")


def test_unsafe_config_path_exits_with_error(tmp_path, capsys):
    (tmp_path / "site.yml").write_text("dist_dir: ../out\n", encoding="utf-8")

    assert main(["--base-dir", str(tmp_path), "build"]) == 1
    assert "OutDirPathContainsDotDot" in capsys.readouterr().err
    assert not (tmp_path.parent / "out").exists()


def test_invalid_config_exits_with_error(tmp_path, capsys):
    (tmp_path / "site.yml").write_text("title: [oops\n", encoding="utf-8")

    assert main(["--base-dir", str(tmp_path), "build"]) == 1
    assert "Invalid YAML" in capsys.readouterr().err


def test_alternate_config_file(tmp_path, write_post, capsys):
    write_post("a.md", "A", "2025-12-01")
    (tmp_path / "site.toml").write_text('dist_dir = "www"\n', encoding="utf-8")

    assert main(["--base-dir", str(tmp_path), "--config", "site.toml", "build"]) == 0
    assert (tmp_path / "www" / "a.html").exists()


def test_fingerprint_command(tmp_path, write_post, capsys):
    write_post("a.md", "A", "2025-12-01")

    assert main(["--base-dir", str(tmp_path), "fingerprint"]) == 0
    first = capsys.readouterr().out.strip()
    assert re.fullmatch(r"[0-9a-f]{16}", first)

    assert main(["--base-dir", str(tmp_path), "fingerprint"]) == 0
    assert capsys.readouterr().out.strip() == first


def test_missing_command_prints_usage(capsys):
    assert main([]) == 2
    assert "usage:" in capsys.readouterr().err


def test_help_command(capsys):
    assert main(["help"]) == 0
    assert "build" in capsys.readouterr().out


@pytest.mark.parametrize("poll_ms", ["0", "60001", "-5"])
def test_serve_rejects_bad_poll_interval(poll_ms, capsys):
    with pytest.raises(SystemExit) as info:
        main(["serve", "--poll-ms", poll_ms])
    assert info.value.code == 2
    assert "--poll-ms" in capsys.readouterr().err


def test_serve_rejects_missing_port_value(capsys):
    with pytest.raises(SystemExit) as info:
        main(["serve", "--port"])
    assert info.value.code == 2


def test_serve_builds_then_serves(tmp_path, write_post, monkeypatch, capsys):
    write_post("a.md", "A", "2025-12-01")
    served = {}

    def fake_serve(output_dir, host, port):
        served.update(output_dir=output_dir, host=host, port=port)

    monkeypatch.setattr("mdblog.cli.serve", fake_serve)

    code = main(["--base-dir", str(tmp_path), "serve", "--no-watch", "--port", "9000"])

    assert code == 0
    assert served == {"output_dir": (tmp_path / "dist").resolve(), "host": "127.0.0.1", "port": 9000}
    assert "Serving dist/ at http://127.0.0.1:9000/" in capsys.readouterr().out


def test_undecodable_config_exits_with_error(tmp_path, capsys):
    (tmp_path / "site.yml").write_bytes(b"title: \xff\xfe\n")

    assert main(["--base-dir", str(tmp_path), "build"]) == 1
    assert capsys.readouterr().err.startswith("error: Config file is not valid UTF-8")
