"""Raw file content for the review viewer."""

import os
from pathlib import Path

from reviewsync.git.runner import run_git
from reviewsync.lib.errors import FileNotFoundInRepoError, PathTraversalError


def resolve_in_repo(repo: Path, file_path: str) -> Path:
    """
    Resolve file_path against the repository root.

    The check runs on the resolved absolute path, so "../" escapes,
    absolute inputs and symlinks pointing outside the root are all rejected.

    Raises:
        PathTraversalError: if the resolved path is not strictly inside repo
    """
    root = Path(os.path.realpath(repo))
    resolved = Path(os.path.realpath(root / file_path))
    if resolved == root or root not in resolved.parents:
        raise PathTraversalError(file_path)
    return resolved


def get_file_content(repo: Path, file_path: str) -> str:
    """
    Read a file from the working tree, falling back to the HEAD commit.

    The fallback covers files deleted on disk but still present in HEAD.

    Raises:
        PathTraversalError: if file_path escapes the repository root
        FileNotFoundInRepoError: if the file is in neither place
    """
    resolved = resolve_in_repo(repo, file_path)
    try:
        return resolved.read_text(encoding="utf-8", errors="replace")
    except IsADirectoryError:
        raise FileNotFoundInRepoError(file_path) from None
    except (FileNotFoundError, NotADirectoryError):
        pass

    relative = resolved.relative_to(Path(os.path.realpath(repo))).as_posix()
    result = run_git(["show", f"HEAD:{relative}"], repo)
    if not result.success:
        raise FileNotFoundInRepoError(file_path)
    return result.stdout
