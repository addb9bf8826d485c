from __future__ import annotations

import queue
import threading
from collections import OrderedDict
from typing import List, Optional

from parley.contracts import TranscriptMessage


class TranscriptBus:
    """
    Thread-safe message sink between translation workers and the transcript view.
    Workers append messages; the view polls (non-blocking).
    The latest content per item id is kept for the most recent `maxsize` items.
    """
    def __init__(self, maxsize: int = 200):
        self.q: "queue.Queue[TranscriptMessage]" = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self._max_items = maxsize if maxsize > 0 else 1000
        self._contents: "OrderedDict[str, str]" = OrderedDict()

    def append(self, id: str, role: str, content: str, is_streaming: bool = False) -> None:
        with self._lock:
            previous = self._contents.pop(id, "")
            self._contents[id] = previous + content if is_streaming else content
            while len(self._contents) > self._max_items:
                self._contents.popitem(last=False)
        self.push(TranscriptMessage(id=id, role=role, content=content, is_streaming=is_streaming))

    def push(self, message: TranscriptMessage) -> None:
        try:
            self.q.put_nowait(message)
        except queue.Full:
            # drop oldest to keep the view responsive
            try:
                _ = self.q.get_nowait()
            except queue.Empty:
                return
            try:
                self.q.put_nowait(message)
            except queue.Full:
                return

    def pop(self) -> Optional[TranscriptMessage]:
        try:
            return self.q.get_nowait()
        except queue.Empty:
            return None

    def drain(self, max_items: int = 1000) -> List[TranscriptMessage]:
        out: List[TranscriptMessage] = []
        while len(out) < max_items:
            message = self.pop()
            if message is None:
                break
            out.append(message)
        return out

    def content_of(self, id: str) -> Optional[str]:
        with self._lock:
            return self._contents.get(id)

