"""Git remote operations."""

from pathlib import Path

from reviewsync.git.runner import run_git, GitResult


def has_remote(repo: Path, name: str = "origin") -> bool:
    """Check if repo has the named remote configured."""
    result = run_git(["remote"], repo)
    return name in result.stdout.split()


def fetch(repo: Path, remote: str = "origin", timeout: float = 10) -> GitResult:
    """Fetch from remote without prompting for credentials.

    Best-effort: callers check .success and carry on with local refs.
    """
    if not has_remote(repo, remote):
        return GitResult(returncode=1, stdout="", stderr=f"No remote named {remote}")
    return run_git(["-c", "credential.interactive=never", "fetch", "--quiet", remote], repo, timeout=timeout)
