from __future__ import annotations

import sys
import threading
from typing import Callable, Optional

from .errors import BlogError


class Watcher:
    """Poll a fingerprint and rebuild once a change has settled.

    A new fingerprint must be observed on two consecutive polls before
    ``rebuild`` runs, so a burst of edits triggers a single rebuild.
    """

    def __init__(
        self,
        rebuild: Callable[[], object],
        compute_fingerprint: Callable[[], int],
        poll_interval: float = 0.5,
        stream=None,
    ) -> None:
        self.rebuild = rebuild
        self.compute_fingerprint = compute_fingerprint
        self.poll_interval = poll_interval
        self.stream = stream
        self.stable: Optional[int] = None
        self.pending: Optional[int] = None

    def _report(self, message: str) -> None:
        print(message, file=self.stream or sys.stderr, flush=True)

    def start(self) -> int:
        self.stable = self.compute_fingerprint()
        self.pending = None
        return self.stable

    def poll_once(self) -> bool:
        """Returns True if a rebuild was attempted."""
        if self.stable is None:
            self.start()
            return False
        try:
            current = self.compute_fingerprint()
        except (BlogError, OSError) as exc:
            self._report(f"watch: fingerprint failed: {exc}")
            return False

        if current == self.stable:
            self.pending = None
            return False
        if self.pending != current:
            self.pending = current
            return False

        self.stable = current
        self.pending = None
        self._report("Change detected; rebuilding...")
        try:
            self.rebuild()
        except (BlogError, OSError) as exc:
            self._report(f"Rebuild failed: {exc}")
            return True
        self._report("Rebuild complete.")
        return True

    def run(self, stop_event: threading.Event) -> None:
        if self.stable is None:
            self.start()
        while not stop_event.wait(self.poll_interval):
            self.poll_once()

    def start_thread(self) -> tuple[threading.Thread, threading.Event]:
        self.start()
        stop_event = threading.Event()
        thread = threading.Thread(target=self.run, args=(stop_event,), name="mdblog-watch", daemon=True)
        thread.start()
        return thread, stop_event
