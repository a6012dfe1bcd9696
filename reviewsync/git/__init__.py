"""Git operations for reviewsync (the diff service).

Stateless query layer over the git binary.

Return type conventions:
- Functions returning GitResult: caller must check .success before using output.
  Examples: run_git(), fetch()
- Functions returning optional values: None when git has no answer.
  Examples: default_branch(), merge_base(), get_commit_sha()
- get_diff() and get_file_content() raise from reviewsync.lib.errors on failure.
"""

from reviewsync.git.runner import (
    GitResult,
    run_git,
    run_git_checked,
)
from reviewsync.git.branch import (
    HEAD,
    DETACHED_HEAD,
    get_repo_root,
    current_branch,
    get_commit_sha,
    default_branch,
    merge_base,
)
from reviewsync.git.remote import (
    has_remote,
    fetch,
)
from reviewsync.git.diff import (
    NULL_DEVICE,
    DiffChange,
    DiffHunk,
    DiffFile,
    DiffResult,
    parse_unified_diff,
    get_diff,
    get_diff_paths,
)
from reviewsync.git.content import (
    resolve_in_repo,
    get_file_content,
)

__all__ = [
    # runner
    "GitResult",
    "run_git",
    "run_git_checked",
    # branch
    "HEAD",
    "DETACHED_HEAD",
    "get_repo_root",
    "current_branch",
    "get_commit_sha",
    "default_branch",
    "merge_base",
    # remote
    "has_remote",
    "fetch",
    # diff
    "NULL_DEVICE",
    "DiffChange",
    "DiffHunk",
    "DiffFile",
    "DiffResult",
    "parse_unified_diff",
    "get_diff",
    "get_diff_paths",
    # content
    "resolve_in_repo",
    "get_file_content",
]
