"""Git branch and revision queries."""

import logging
from pathlib import Path

from reviewsync.git.remote import fetch
from reviewsync.git.runner import run_git
from reviewsync.lib.errors import RepositoryNotFoundError

logger = logging.getLogger(__name__)

HEAD = "HEAD"

# Returned by current_branch() when HEAD is detached.
DETACHED_HEAD = HEAD

FALLBACK_DEFAULT_BRANCHES = ("main", "master")


def get_repo_root(cwd: Path) -> Path:
    """Get the top-level directory of the repository containing cwd.

    Raises:
        RepositoryNotFoundError: if cwd is not inside a git repository
    """
    result = run_git(["rev-parse", "--show-toplevel"], cwd)
    if not result.success:
        raise RepositoryNotFoundError(f"Not inside a git repository: {cwd}")
    return Path(result.output)


def current_branch(repo: Path) -> str:
    """Get the abbreviated current branch name.

    Returns the literal "HEAD" when detached (mid-rebase, bisect, checked-out
    SHA) or when the branch can't be determined.
    """
    result = run_git(["rev-parse", "--abbrev-ref", "HEAD"], repo)
    if result.success and result.output:
        return result.output
    return DETACHED_HEAD


def get_commit_sha(repo: Path, ref: str = "HEAD") -> str | None:
    """Get the SHA of a ref."""
    result = run_git(["rev-parse", "--verify", "--quiet", ref], repo)
    if result.success:
        return result.output
    return None


def default_branch(repo: Path) -> str | None:
    """
    Get the remote's default branch name (e.g. "main").

    Tries origin's symbolic HEAD first, then probes origin/main and
    origin/master. Returns None if no remote tracking branch resolves.
    """
    result = run_git(["symbolic-ref", "--quiet", "refs/remotes/origin/HEAD"], repo)
    if result.success:
        # refs/remotes/origin/main -> main
        ref = result.output
        prefix = "refs/remotes/origin/"
        if ref.startswith(prefix) and len(ref) > len(prefix):
            return ref[len(prefix):]

    for candidate in FALLBACK_DEFAULT_BRANCHES:
        probe = run_git(["rev-parse", "--verify", "--quiet", f"refs/remotes/origin/{candidate}"], repo)
        if probe.success:
            return candidate

    return None


def merge_base(repo: Path, fetch_timeout: float = 10) -> str | None:
    """
    Get the merge-base of origin/<default branch> and HEAD.

    Fetches origin first so the base is current; an offline or slow remote is
    tolerated. Returns None when there is no default branch, or when the
    merge-base is HEAD itself (we are on the default branch).
    """
    fetched = fetch(repo, timeout=fetch_timeout)
    if not fetched.success:
        logger.debug(f"Fetch before merge-base failed, using local refs: {fetched.stderr.strip()}")

    branch = default_branch(repo)
    if not branch:
        return None

    result = run_git(["merge-base", f"origin/{branch}", "HEAD"], repo)
    if not result.success:
        return None
    base = result.output
    if not base:
        return None

    head = get_commit_sha(repo, "HEAD")
    if base == head:
        return None
    return base
