from __future__ import annotations

import functools
import http.server
from pathlib import Path


class PreviewHandler(http.server.SimpleHTTPRequestHandler):
    def _method_not_allowed(self) -> None:
        body = b"Method Not Allowed\n"
        self.send_response(405)
        self.send_header("Allow", "GET, HEAD")
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    do_POST = _method_not_allowed
    do_PUT = _method_not_allowed
    do_PATCH = _method_not_allowed
    do_DELETE = _method_not_allowed


def make_server(output_dir: Path, host: str = "127.0.0.1", port: int = 8080) -> http.server.ThreadingHTTPServer:
    handler = functools.partial(PreviewHandler, directory=str(output_dir))
    return http.server.ThreadingHTTPServer((host, port), handler)


def serve(output_dir: Path, host: str = "127.0.0.1", port: int = 8080) -> None:
    with make_server(output_dir, host, port) as httpd:
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nServer stopped.")
