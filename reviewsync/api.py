"""
Request façade.

Transport-agnostic entry points for viewers: each method validates its
input, calls the diff service or the store, and pushes the resulting
document to live viewers. Errors come from reviewsync.lib.errors;
status_for() maps them to HTTP-style codes for whatever transport sits on
top.
"""

import hmac
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from reviewsync.git.content import get_file_content
from reviewsync.git.diff import get_diff
from reviewsync.lib.errors import (
    FileNotFoundInRepoError,
    NotFoundError,
    PathTraversalError,
    UnauthorizedError,
    ValidationError,
)
from reviewsync.lib.models import CommentDraft, CommentPatch, Summary, parse_model
from reviewsync.notify import Connection, NotificationHub
from reviewsync.store import ReviewStore

logger = logging.getLogger(__name__)

COMMENT_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')

STATUS_CODES = {
    ValidationError: 400,
    UnauthorizedError: 401,
    PathTraversalError: 403,
    NotFoundError: 404,
    FileNotFoundInRepoError: 404,
}


def status_for(error: Exception) -> int:
    """HTTP-style status code for an error raised by ReviewApi."""
    for error_type, code in STATUS_CODES.items():
        if isinstance(error, error_type):
            return code
    return 500


@dataclass
class ReviewApi:
    """The only caller of the store and diff service on behalf of viewers."""
    store: ReviewStore
    hub: NotificationHub
    repo_root: Path
    ref: str
    token: str

    def check_token(self, token: str | None) -> None:
        """
        Raises:
            UnauthorizedError: if token doesn't match the session token
        """
        if not hmac.compare_digest((token or "").encode(), self.token.encode()):
            raise UnauthorizedError("Unauthorized")

    def _check_comment_id(self, comment_id: str) -> None:
        if not comment_id or not COMMENT_ID_PATTERN.match(comment_id):
            raise NotFoundError(comment_id)

    # Reads

    def get_document(self) -> dict:
        return self.store.get_data().to_dict()

    def get_diff(self, ref: str | None = None) -> dict:
        return get_diff(self.repo_root, ref or self.ref).to_dict()

    def get_file(self, path: str | None) -> str:
        """
        Raises:
            ValidationError: no path given
            PathTraversalError: path escapes the repository
            FileNotFoundInRepoError: not in the working tree or HEAD
        """
        if not path:
            raise ValidationError("Missing 'path' parameter")
        return get_file_content(self.repo_root, path)

    # Writes

    def add_comment(self, payload: dict) -> dict:
        draft = parse_model(CommentDraft, payload)
        document = self.store.add_comment(draft)
        self.hub.broadcast_update(document)
        return document.to_dict()

    def update_comment(self, comment_id: str, payload: dict) -> dict:
        """
        Raises:
            ValidationError: bad patch (checked before the id is looked up)
            NotFoundError: unknown comment id
        """
        self._check_comment_id(comment_id)
        patch = parse_model(CommentPatch, payload)
        comment = self.store.update_comment(comment_id, patch)
        if comment is None:
            raise NotFoundError(comment_id)
        self.hub.broadcast_update(self.store.get_data())
        return comment.to_dict()

    def delete_comment(self, comment_id: str) -> dict:
        """
        Raises:
            NotFoundError: unknown comment id
        """
        self._check_comment_id(comment_id)
        if not self.store.delete_comment(comment_id):
            raise NotFoundError(comment_id)
        self.hub.broadcast_update(self.store.get_data())
        return {"ok": True}

    def set_summary(self, payload: dict) -> dict:
        summary = parse_model(Summary, payload)
        document = self.store.set_summary(summary)
        self.hub.broadcast_update(document)
        return document.to_dict()

    # Push channel

    def subscribe(self, connection: Connection) -> bool:
        return self.hub.add(connection)
