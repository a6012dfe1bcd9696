"""
reviewsync comment / reply / resolve / reopen / delete / summary - Edit the review.
"""

import json
from pathlib import Path

from reviewsync.lib.errors import ValidationError
from reviewsync.session import ReviewSession


def cmd_comment(args, session: ReviewSession) -> int:
    """Add a comment on a line (or line range) of a file."""
    payload = {"file": args.file, "line": args.line, "side": args.side, "body": args.body}
    if args.end_line is not None:
        payload["endLine"] = args.end_line

    document = session.api.add_comment(payload)
    comment = document["comments"][-1]
    print(f"Added comment {comment['id']} on {comment['file']}:{comment['line']}")
    return 0


def cmd_reply(args, session: ReviewSession) -> int:
    """Reply to a comment; reopens it for the agent."""
    comment = session.api.update_comment(args.id, {"reply": args.body})
    print(f"Replied to {comment['id']} ({len(comment['thread'])} in thread)")
    return 0


def cmd_resolve(args, session: ReviewSession) -> int:
    comment = session.api.update_comment(args.id, {"status": "resolved"})
    print(f"Resolved {comment['id']}")
    _print_status(session)
    return 0


def cmd_reopen(args, session: ReviewSession) -> int:
    comment = session.api.update_comment(args.id, {"status": "pending"})
    print(f"Reopened {comment['id']}")
    _print_status(session)
    return 0


def cmd_delete(args, session: ReviewSession) -> int:
    session.api.delete_comment(args.id)
    print(f"Deleted {args.id}")
    _print_status(session)
    return 0


def cmd_summary(args, session: ReviewSession) -> int:
    """Replace the review summary from a JSON file."""
    path = Path(args.file)
    try:
        payload = json.loads(path.read_text())
    except FileNotFoundError:
        raise ValidationError(f"Summary file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {path}: {e}") from None

    session.api.set_summary(payload)
    print(f"Summary updated from {path}")
    return 0


def _print_status(session: ReviewSession) -> None:
    print(f"Review status: {session.api.get_document()['status']}")
