"""
reviewsync watch - Stream review events to stdout.

Prints server-sent-event frames (connected, comments-updated, diff-changed)
until interrupted. Useful for checking what a viewer would receive.
"""

import sys
import threading

from reviewsync.notify import StreamConnection
from reviewsync.session import ReviewSession


def cmd_watch(args, session: ReviewSession) -> int:
    connection = StreamConnection(sys.stdout)
    if not session.api.subscribe(connection):
        print("ERROR: Could not attach to stdout", file=sys.stderr)
        return 1

    session.start_watching()
    print(f"Watching {session.store.get_file_path()} (Ctrl-C to stop)", file=sys.stderr)

    stopped = threading.Event()
    try:
        stopped.wait()
    except KeyboardInterrupt:
        pass
    return 0
