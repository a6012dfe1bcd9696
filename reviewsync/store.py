"""
Review document store.

Owns .claude/review.json. The file on disk is authoritative: the external
agent edits it directly, so the in-memory document is only a cache keyed by
a file stamp (mtime, size, inode). Every read and every mutation first
reloads if the stamp moved; every write goes to a temp file and is renamed
over the target, so neither side ever sees a half-written document.

There is no lock file. Two writers inside the same reload window means the
last rename wins; the agent's instructions assume exactly this model.
"""

import json
import logging
import os
import re
import secrets
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from reviewsync.git.branch import DETACHED_HEAD
from reviewsync.lib.errors import CorruptionError, ValidationError
from reviewsync.lib.lifecycle import recompute_status
from reviewsync.lib.migrate import migrate
from reviewsync.lib.models import (
    Comment,
    CommentDraft,
    CommentPatch,
    ReviewDocument,
    Summary,
    ThreadEntry,
    parse_model,
    utc_now_iso,
)
from reviewsync.lib.validate import validate, validate_before_write
from reviewsync.lib.watch import FileWatch

logger = logging.getLogger(__name__)

REVIEW_DIR = ".claude"
REVIEW_FILE = "review.json"
SCHEMA_NAME = "review"

MAX_BACKUP_BRANCH_LEN = 50
UNSAFE_BRANCH_CHARS = re.compile(r'[^A-Za-z0-9._-]')

COMMENT_ID_BYTES = 6  # 8 url-safe characters


@dataclass(frozen=True)
class FileStamp:
    """Version stamp of the document file as last seen by this process."""
    mtime_ns: int
    size: int
    inode: int

    @classmethod
    def of(cls, path: Path) -> "FileStamp | None":
        try:
            st = path.stat()
        except OSError:
            return None
        return cls(mtime_ns=st.st_mtime_ns, size=st.st_size, inode=st.st_ino)


def sanitize_branch(branch: str) -> str:
    """Make a branch name safe to embed in a file name."""
    return UNSAFE_BRANCH_CHARS.sub("_", branch)[:MAX_BACKUP_BRANCH_LEN]


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def decode_document(raw, branch: str) -> tuple[ReviewDocument, bool]:
    """
    Turn parsed JSON into a ReviewDocument.

    Returns:
        (document, migrated) - migrated is True if an older shape was upgraded

    Raises:
        CorruptionError: if the data fails schema or model validation
    """
    raw, migrated = migrate(raw, branch)
    if not isinstance(raw, dict):
        raise CorruptionError(f"Review document is not a JSON object ({type(raw).__name__})")
    try:
        validate(raw, SCHEMA_NAME)
        document = parse_model(ReviewDocument, raw)
    except ValidationError as e:
        raise CorruptionError(str(e)) from None
    return document, migrated


class ReviewStore:
    """Persisted review state for one repository and branch."""

    def __init__(self, repo_root: Path, ref: str, branch: str, path: Path | None = None):
        self.repo_root = Path(repo_root)
        self.ref = ref
        self.branch = branch
        self.path = Path(path) if path else self.repo_root / REVIEW_DIR / REVIEW_FILE

        self._data: ReviewDocument | None = None
        self._stamp: FileStamp | None = None
        self._lock = threading.RLock()
        self._watch: FileWatch | None = None

        self.load()

    # ------------------------------------------------------------------
    # Loading and persistence
    # ------------------------------------------------------------------

    def load(self) -> ReviewDocument:
        """
        Load the document from disk, creating it if missing.

        Handles corruption (backup + fresh), legacy shapes (migrate in place)
        and branch switches (backup + fresh). Detached HEAD never counts as a
        branch switch.
        """
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)

            if not self.path.exists():
                document = ReviewDocument.empty(self.ref, self.branch)
                self._write(document)
                return document

            stamp = FileStamp.of(self.path)
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                document, migrated = decode_document(raw, self.branch)
            except (json.JSONDecodeError, UnicodeDecodeError, CorruptionError) as e:
                return self._recover_corrupt(e)

            if migrated:
                logger.info(f"Adopted branch '{self.branch}' for legacy review document {self.path}")
                self._write(document)
                return document

            if document.branch != self.branch and self.branch != DETACHED_HEAD:
                return self._switch_branch(document)

            self._data = document
            self._stamp = stamp
            return document

    def _backup_path(self, tag: str | None) -> Path:
        suffix = f".backup.{tag}.{_epoch_ms()}" if tag else f".backup.{_epoch_ms()}"
        return self.path.with_name(self.path.name + suffix)

    def _recover_corrupt(self, error: Exception) -> ReviewDocument:
        logger.warning(f"Review document {self.path} is corrupted, creating backup: {error}")
        backup = self._backup_path(None)
        try:
            self.path.rename(backup)
            logger.warning(f"  Backed up to {backup}")
        except OSError as e:
            if self._data is not None:
                logger.warning(f"  Backup failed ({e}); keeping the in-memory document")
                return self._data
            logger.warning(f"  Backup failed ({e}); overwriting with a fresh document")

        fresh = ReviewDocument.empty(self.ref, self.branch)
        self._write(fresh)
        return fresh

    def _switch_branch(self, old: ReviewDocument) -> ReviewDocument:
        backup = self._backup_path(sanitize_branch(old.branch))
        self.path.rename(backup)
        logger.warning(
            f"Branch changed ({old.branch} -> {self.branch}); "
            f"previous review with {len(old.comments)} comment(s) saved to {backup}"
        )
        fresh = ReviewDocument.empty(self.ref, self.branch)
        self._write(fresh)
        return fresh

    def _write(self, document: ReviewDocument) -> None:
        """
        Atomically persist document: temp file in the same directory, then rename.

        On failure the temp file is removed and the error propagates; the
        previous document on disk is untouched.
        """
        data = document.to_dict()
        validate_before_write(data, SCHEMA_NAME, self.path)
        text = json.dumps(data, indent=2) + "\n"

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(f"{self.path.name}.tmp.{os.getpid()}")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            try:
                tmp.unlink()
            except FileNotFoundError:
                pass
            raise

        self._stamp = FileStamp.of(self.path)
        self._data = document

    def _reload_if_changed(self) -> bool:
        """
        Re-read the file if its stamp moved since we last read or wrote it.

        A missing or unreadable file keeps the cached document and the old
        stamp, so the next access tries again.

        Returns:
            True if the cache was replaced
        """
        stamp = FileStamp.of(self.path)
        if stamp is None or stamp == self._stamp:
            return False

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            document, _ = decode_document(raw, self.branch)
        except (OSError, json.JSONDecodeError, UnicodeDecodeError, CorruptionError) as e:
            logger.warning(f"Ignoring unreadable external change to {self.path}: {e}")
            return False

        logger.debug(f"Reloaded {self.path} after external change")
        self._data = document
        self._stamp = stamp
        return True

    def reload(self) -> bool:
        """Pick up an external write, if any. Returns True if one was found."""
        with self._lock:
            return self._reload_if_changed()

    @contextmanager
    def _mutate(self):
        """
        Read-modify-write against fresh state.

        Yields a private copy of the current document; if the block completes
        the copy is written atomically and becomes the cached document.
        """
        with self._lock:
            self._reload_if_changed()
            working = self._data.model_copy(deep=True)
            yield working
            self._write(working)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_data(self) -> ReviewDocument:
        """Current document (deep copy), reloaded first if changed on disk."""
        with self._lock:
            self._reload_if_changed()
            return self._data.model_copy(deep=True)

    def get_comments(self) -> list[Comment]:
        return self.get_data().comments

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _new_comment_id(self, document: ReviewDocument) -> str:
        existing = {c.id for c in document.comments}
        while True:
            comment_id = secrets.token_urlsafe(COMMENT_ID_BYTES)
            if comment_id not in existing:
                return comment_id

    def add_comment(self, draft: CommentDraft | dict) -> ReviewDocument:
        """Append a new pending comment. Returns the updated document."""
        if not isinstance(draft, CommentDraft):
            draft = parse_model(CommentDraft, draft)

        with self._mutate() as document:
            now = utc_now_iso()
            document.comments.append(Comment(
                id=self._new_comment_id(document),
                file=draft.file,
                line=draft.line,
                end_line=draft.end_line,
                side=draft.side,
                body=draft.body,
                status="pending",
                thread=[],
                created_at=now,
                resolved_at=None,
            ))
            if document.submitted_at is None:
                document.submitted_at = now
            recompute_status(document)

        return self.get_data()

    def update_comment(self, comment_id: str, patch: CommentPatch | dict) -> Comment | None:
        """
        Apply a partial update to one comment.

        Order: reply (reopens), status, body, resolvedAt; then resolvedAt is
        stamped if the comment ends up resolved without one.

        Returns:
            The updated comment, or None if comment_id is unknown
        """
        if not isinstance(patch, CommentPatch):
            patch = parse_model(CommentPatch, patch)

        with self._lock:
            self._reload_if_changed()
            if self._data.find(comment_id) is None:
                return None

            with self._mutate() as document:
                comment = document.find(comment_id)
                if patch.has("reply"):
                    comment.thread.append(ThreadEntry(author="user", body=patch.reply, created_at=utc_now_iso()))
                    comment.status = "pending"
                if patch.has("status"):
                    comment.status = patch.status
                if patch.has("body"):
                    comment.body = patch.body
                if patch.has("resolved_at"):
                    comment.resolved_at = patch.resolved_at
                if comment.status == "resolved" and not comment.resolved_at:
                    comment.resolved_at = utc_now_iso()
                recompute_status(document)

            return self._data.find(comment_id).model_copy(deep=True)

    def delete_comment(self, comment_id: str) -> bool:
        """Remove a comment. Returns False if comment_id is unknown."""
        with self._lock:
            self._reload_if_changed()
            if self._data.find(comment_id) is None:
                return False

            with self._mutate() as document:
                document.comments = [c for c in document.comments if c.id != comment_id]
                recompute_status(document)
            return True

    def set_summary(self, summary: Summary | dict) -> ReviewDocument:
        """Replace the summary, keeping any comments added concurrently."""
        if not isinstance(summary, Summary):
            summary = parse_model(Summary, summary)

        with self._mutate() as document:
            document.summary = summary

        return self.get_data()

    # ------------------------------------------------------------------
    # Watching
    # ------------------------------------------------------------------

    def watch(self, callback: Callable[[], None], debounce: float = 0.1) -> FileWatch:
        """
        Call callback after each external change to the document.

        Replaces any previous subscription. Our own writes don't trigger the
        callback because they move the cached stamp too.
        """
        self.unwatch()

        def on_change(_paths: set[str]) -> None:
            if self.reload():
                callback()

        self._watch = FileWatch([self.path], on_change, debounce=debounce, name="review-doc").start()
        return self._watch

    def unwatch(self) -> None:
        if self._watch is not None:
            self._watch.close()
            self._watch = None

    def get_file_path(self) -> Path:
        return self.path
