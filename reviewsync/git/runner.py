"""Subprocess wrapper for the git binary used by the diff service."""

import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from reviewsync.lib.errors import GitCommandError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


@dataclass
class GitResult:
    """Outcome of one git invocation; never raises on its own."""
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False
    args: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """stdout without surrounding whitespace."""
        return self.stdout.strip()


def run_git(
    args: list[str],
    cwd: Path,
    timeout: float = DEFAULT_TIMEOUT,
) -> GitResult:
    """
    Run `git -C <cwd> <args>` and capture its output as UTF-8 text.

    Undecodable bytes in file content are replaced rather than failing the
    whole diff. A missing git binary and a timeout both come back as failed
    results (returncode -1).

    Args:
        args: Git command arguments (e.g., ["diff", "HEAD"])
        cwd: Repository (or any directory inside it)
        timeout: Seconds before the process is killed

    Returns:
        GitResult with returncode, stdout, stderr, and timed_out flag
    """
    cmd = ["git", "-C", str(cwd)] + args
    try:
        completed = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.debug(f"git {' '.join(args)} timed out after {timeout}s")
        return GitResult(-1, "", f"Command timed out after {timeout}s", timed_out=True, args=args)
    except FileNotFoundError:
        return GitResult(-1, "", "git executable not found", args=args)

    result = GitResult(completed.returncode, completed.stdout, completed.stderr, args=args)
    if not result.success:
        logger.debug(f"git {' '.join(args)} exited {result.returncode}: {result.stderr.strip()}")
    return result


def run_git_checked(args: list[str], cwd: Path, timeout: float = DEFAULT_TIMEOUT) -> str:
    """Run a git command that must succeed; return its stdout.

    Raises:
        GitCommandError: if the command fails or times out
    """
    result = run_git(args, cwd, timeout=timeout)
    if not result.success:
        raise GitCommandError(args, result.stderr)
    return result.stdout
