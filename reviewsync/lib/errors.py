"""
Error taxonomy for reviewsync.

Callers (the request façade, the CLI) map these onto responses and exit
codes. Corruption is recovered inside the store and only ever logged.
"""


class ReviewSyncError(Exception):
    """Base class for all reviewsync errors."""
    pass


class ValidationError(ReviewSyncError):
    """Malformed or schema-violating input. Nothing was mutated."""

    def __init__(self, message: str, path: str = None):
        self.path = path
        super().__init__(message + (f" at {path}" if path else ""))


class NotFoundError(ReviewSyncError):
    """Unknown comment id."""

    def __init__(self, comment_id: str):
        self.comment_id = comment_id
        super().__init__(f"Comment not found: {comment_id}")


class PathTraversalError(ReviewSyncError):
    """A file path resolved outside the repository root."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Path traversal detected: {path}")


class FileNotFoundInRepoError(ReviewSyncError):
    """File is neither in the working tree nor in HEAD."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found: {path}")


class CorruptionError(ReviewSyncError):
    """Review document on disk could not be parsed or failed validation."""
    pass


class GitCommandError(ReviewSyncError):
    """A git command required for the operation failed."""

    def __init__(self, args: list[str], stderr: str):
        self.args_list = args
        self.stderr = stderr
        detail = stderr.strip().splitlines()[-1] if stderr.strip() else "unknown error"
        super().__init__(f"git {' '.join(args)} failed: {detail}")


class RepositoryNotFoundError(ReviewSyncError):
    """Not inside a git repository, or git is not installed."""
    pass


class UnauthorizedError(ReviewSyncError):
    """Capability token missing or wrong."""
    pass
