"""
Configuration for a review session.

Resolved once at startup from, in order of precedence:
1. Explicit arguments (CLI flags)
2. Optional <repo>/.claude/reviewsync.yaml
3. Defaults (merge-base with origin's default branch, else "HEAD")

Example reviewsync.yaml:

    ref: origin/main        # diff base; omit to use the merge-base
    review_file: review.json
    fetch_timeout: 10       # seconds allowed for `git fetch` before merge-base
    watch_debounce: 0.1     # seconds to let writes settle before notifying
"""

import logging
import secrets
import shutil
from dataclasses import dataclass
from pathlib import Path

import yaml

from reviewsync.git.branch import DETACHED_HEAD, HEAD, current_branch, get_repo_root, merge_base
from reviewsync.lib.errors import RepositoryNotFoundError, ValidationError

logger = logging.getLogger(__name__)

CONFIG_FILE = "reviewsync.yaml"
CONFIG_DIR = ".claude"

DEFAULT_REVIEW_FILE = "review.json"
DEFAULT_FETCH_TIMEOUT = 10
DEFAULT_WATCH_DEBOUNCE = 0.1
DIFF_WATCH_DEBOUNCE = 0.2

KNOWN_KEYS = {"ref", "review_file", "fetch_timeout", "watch_debounce"}


@dataclass
class ReviewConfig:
    """Everything a review session needs to start."""
    repo_root: Path
    ref: str
    branch: str
    token: str
    review_path: Path
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    watch_debounce: float = DEFAULT_WATCH_DEBOUNCE

    @property
    def detached(self) -> bool:
        return self.branch == DETACHED_HEAD


def load_config_file(repo_root: Path) -> dict:
    """
    Load <repo>/.claude/reviewsync.yaml if present.

    Returns an empty dict when the file doesn't exist.

    Raises:
        ValidationError: if the file isn't a YAML mapping or has bad values
    """
    path = repo_root / CONFIG_DIR / CONFIG_FILE
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid YAML in {path}: {e}") from None

    if not isinstance(data, dict):
        raise ValidationError(f"{path} must contain a mapping, got {type(data).__name__}")

    for key in sorted(set(data) - KNOWN_KEYS):
        logger.warning(f"Ignoring unknown key '{key}' in {path}")

    ref = data.get("ref")
    if ref is not None and (not isinstance(ref, str) or not ref.strip()):
        raise ValidationError(f"'ref' in {path} must be a non-empty string")

    review_file = data.get("review_file")
    if review_file is not None:
        if not isinstance(review_file, str) or "/" in review_file or review_file in ("", ".", ".."):
            raise ValidationError(f"'review_file' in {path} must be a plain file name")

    for key in ("fetch_timeout", "watch_debounce"):
        value = data.get(key)
        if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0):
            raise ValidationError(f"'{key}' in {path} must be a positive number")

    return {k: v for k, v in data.items() if k in KNOWN_KEYS}


def check_git() -> None:
    """Raise RepositoryNotFoundError if git is not installed."""
    if not shutil.which("git"):
        raise RepositoryNotFoundError("git is not installed or not in PATH")


def startup(cwd: Path | None = None, ref: str | None = None) -> ReviewConfig:
    """
    Resolve the session configuration for the repository containing cwd.

    Raises:
        RepositoryNotFoundError: git missing, or cwd not inside a repository
        ValidationError: bad reviewsync.yaml
    """
    check_git()
    repo_root = get_repo_root(cwd or Path.cwd())
    file_config = load_config_file(repo_root)

    fetch_timeout = float(file_config.get("fetch_timeout", DEFAULT_FETCH_TIMEOUT))
    resolved_ref = ref or file_config.get("ref") or merge_base(repo_root, fetch_timeout=fetch_timeout) or HEAD
    branch = current_branch(repo_root)

    config = ReviewConfig(
        repo_root=repo_root,
        ref=resolved_ref,
        branch=branch,
        token=secrets.token_hex(16),
        review_path=repo_root / CONFIG_DIR / file_config.get("review_file", DEFAULT_REVIEW_FILE),
        fetch_timeout=fetch_timeout,
        watch_debounce=float(file_config.get("watch_debounce", DEFAULT_WATCH_DEBOUNCE)),
    )
    logger.info(f"Review of {repo_root} on branch {branch} against {resolved_ref}")
    return config
