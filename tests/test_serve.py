from __future__ import annotations

import threading
import urllib.error
import urllib.request

import pytest

from mdblog.serve import make_server

# Bypass any proxy configured in the environment.
opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))


@pytest.fixture
def server(tmp_path):
    (tmp_path / "index.html").write_text("<h1>home</h1>", encoding="utf-8")
    httpd = make_server(tmp_path, "127.0.0.1", 0)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{httpd.server_address[1]}"
    httpd.shutdown()
    httpd.server_close()
    thread.join(5)


def test_serves_output_directory(server):
    with opener.open(f"{server}/") as response:
        assert response.status == 200
        assert response.read() == b"<h1>home</h1>"


def test_missing_file_is_404(server):
    with pytest.raises(urllib.error.HTTPError) as info:
        opener.open(f"{server}/nope.html")
    assert info.value.code == 404
    info.value.close()


def test_only_get_and_head_are_allowed(server):
    request = urllib.request.Request(f"{server}/index.html", data=b"x", method="POST")
    with pytest.raises(urllib.error.HTTPError) as info:
        opener.open(request)
    assert info.value.code == 405
    assert info.value.headers["Allow"] == "GET, HEAD"
    info.value.close()
