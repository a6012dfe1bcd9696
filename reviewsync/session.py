"""
Review session: wires config, store, notification hub and watches together.

    with ReviewSession.open(ref="origin/main") as session:
        session.api.add_comment({...})

The document watch pushes comments-updated when the agent edits
review.json; the diff-file watch pushes diff-changed when a file in the
current diff changes. close() releases connections and both watches.
"""

import logging
from pathlib import Path

from reviewsync.api import ReviewApi
from reviewsync.git.diff import get_diff_paths
from reviewsync.lib.config import DIFF_WATCH_DEBOUNCE, ReviewConfig, startup
from reviewsync.lib.errors import GitCommandError
from reviewsync.lib.watch import FileWatch
from reviewsync.notify import NotificationHub, watch_diff_files
from reviewsync.store import ReviewStore

logger = logging.getLogger(__name__)


class ReviewSession:
    """One running review: the owner of every long-lived resource."""

    def __init__(self, config: ReviewConfig):
        self.config = config
        self.store = ReviewStore(config.repo_root, config.ref, config.branch, path=config.review_path)
        self.hub = NotificationHub()
        self.api = ReviewApi(
            store=self.store,
            hub=self.hub,
            repo_root=config.repo_root,
            ref=config.ref,
            token=config.token,
        )
        self.diff_watch: FileWatch | None = None
        self.watching = False

    @classmethod
    def open(cls, cwd: Path | None = None, ref: str | None = None, watch: bool = True) -> "ReviewSession":
        session = cls(startup(cwd=cwd, ref=ref))
        if watch:
            session.start_watching()
        return session

    def start_watching(self) -> None:
        """Start the document watch and the diff-file watch."""
        if self.watching:
            return

        self.store.watch(self._on_document_changed, debounce=self.config.watch_debounce)

        try:
            paths = get_diff_paths(self.config.repo_root, self.config.ref)
        except GitCommandError as e:
            logger.warning(f"Could not set up file watching: {e}")
            paths = []
        if paths:
            self.diff_watch = watch_diff_files(self.hub, paths, debounce=DIFF_WATCH_DEBOUNCE)

        self.watching = True

    def _on_document_changed(self) -> None:
        self.hub.broadcast_update(self.store.get_data())

    def close(self) -> None:
        """Release viewer connections and stop both watches."""
        self.hub.close_all()
        self.store.unwatch()
        if self.diff_watch is not None:
            self.diff_watch.close()
            self.diff_watch = None
        self.watching = False

    def __enter__(self) -> "ReviewSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
