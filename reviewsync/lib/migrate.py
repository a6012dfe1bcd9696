"""
Document shape migrations.

Older review.json files are decoded into the current shape here, once, at
load time. Business logic only ever sees the current shape.

Shapes:
- "v1-pre-branch": version 1 written before documents were tied to a
  branch. Migrated by adopting the branch that is checked out now; this is
  a forward migration, not a branch switch.
- "v1": current shape.
"""

import logging

logger = logging.getLogger(__name__)

SHAPE_PRE_BRANCH = "v1-pre-branch"
SHAPE_CURRENT = "v1"


def detect_shape(raw: dict) -> str:
    """Tag a raw document with its shape."""
    if "branch" not in raw:
        return SHAPE_PRE_BRANCH
    return SHAPE_CURRENT


def _from_pre_branch(raw: dict, branch: str) -> dict:
    migrated = dict(raw)
    migrated["branch"] = branch
    comments = migrated.get("comments")
    if isinstance(comments, list):
        upgraded = []
        for comment in comments:
            if isinstance(comment, dict):
                comment = dict(comment)
                comment.setdefault("thread", [])
                comment.setdefault("response", None)
            upgraded.append(comment)
        migrated["comments"] = upgraded
    return migrated


MIGRATIONS = {
    SHAPE_PRE_BRANCH: _from_pre_branch,
}


def migrate(raw: dict, branch: str) -> tuple[dict, bool]:
    """
    Bring a raw document to the current shape.

    Args:
        raw: Parsed JSON object from disk
        branch: Currently checked-out branch, adopted by pre-branch documents

    Returns:
        (document, migrated) - migrated is True if the caller should persist
    """
    if not isinstance(raw, dict):
        return raw, False

    shape = detect_shape(raw)
    if shape == SHAPE_CURRENT:
        return raw, False

    logger.info(f"Migrating review document from shape {shape} (branch={branch})")
    return MIGRATIONS[shape](raw, branch), True
