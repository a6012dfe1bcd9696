"""
Push notifications for live review viewers.

A NotificationHub is created with the session and torn down with it. It
holds the open viewer connections and writes server-sent-event frames:

    event: <name>
    data: <json>
    <blank line>

A connection is anything with write(str) and close(). A connection whose
write raises is dropped; the others still receive the frame.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Iterable, Protocol, TextIO

from reviewsync.lib.models import ReviewDocument
from reviewsync.lib.watch import FileWatch

logger = logging.getLogger(__name__)

EVENT_CONNECTED = "connected"
EVENT_COMMENTS_UPDATED = "comments-updated"
EVENT_DIFF_CHANGED = "diff-changed"


class Connection(Protocol):
    def write(self, data: str) -> object: ...

    def close(self) -> object: ...


def format_event(event: str, payload) -> str:
    """Serialize one SSE frame."""
    return f"event: {event}\ndata: {json.dumps(payload, separators=(',', ':'))}\n\n"


class NotificationHub:
    """Registry of live viewer connections."""

    def __init__(self):
        self._connections: set = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    @property
    def connection_count(self) -> int:
        return len(self)

    def add(self, connection: Connection) -> bool:
        """
        Register a connection and acknowledge it with a `connected` frame.

        Returns False (and does not register) if the acknowledgement fails.
        """
        try:
            connection.write(format_event(EVENT_CONNECTED, {"message": "connected"}))
        except Exception as e:
            logger.warning(f"Viewer connection failed before registering: {e}")
            return False
        with self._lock:
            self._connections.add(connection)
        logger.debug(f"Viewer connected ({len(self)} open)")
        return True

    def remove(self, connection: Connection) -> None:
        """Forget a connection (client went away). Does not close it."""
        with self._lock:
            self._connections.discard(connection)

    def broadcast(self, event: str, payload) -> int:
        """
        Send one frame to every connection.

        Returns:
            Number of connections that received the frame
        """
        frame = format_event(event, payload)
        with self._lock:
            targets = list(self._connections)

        delivered = 0
        for connection in targets:
            try:
                connection.write(frame)
                delivered += 1
            except Exception as e:
                logger.warning(f"Viewer disconnected (removing): {e}")
                self.remove(connection)
        return delivered

    def broadcast_update(self, document: ReviewDocument | dict) -> int:
        """Push the full current document."""
        if isinstance(document, ReviewDocument):
            document = document.to_dict()
        return self.broadcast(EVENT_COMMENTS_UPDATED, document)

    def broadcast_diff_changed(self) -> int:
        """Tell viewers to re-fetch the diff. Carries no diff content."""
        return self.broadcast(EVENT_DIFF_CHANGED, {"message": EVENT_DIFF_CHANGED})

    def close_all(self) -> None:
        """End every connection and clear the registry (shutdown)."""
        with self._lock:
            targets = list(self._connections)
            self._connections.clear()
        for connection in targets:
            try:
                connection.close()
            except Exception as e:
                logger.debug(f"Ignoring error closing viewer connection: {e}")


def watch_diff_files(hub: NotificationHub, paths: Iterable[Path], debounce: float = 0.2) -> FileWatch:
    """
    Broadcast diff-changed whenever one of the diffed files changes on disk.

    The diff itself is not recomputed here; viewers pull it again.
    """
    def on_change(changed: set[str]) -> None:
        logger.debug(f"Diffed files changed: {sorted(changed)}")
        hub.broadcast_diff_changed()

    return FileWatch(paths, on_change, debounce=debounce, name="diff-files").start()


class StreamConnection:
    """Connection that writes frames to a text stream (terminal viewer)."""

    def __init__(self, stream: TextIO):
        self.stream = stream
        self.closed = False

    def write(self, data: str) -> None:
        if self.closed:
            raise ConnectionError("write after close")
        self.stream.write(data)
        self.stream.flush()

    def close(self) -> None:
        self.closed = True
