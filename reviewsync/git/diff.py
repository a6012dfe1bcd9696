"""Git diff operations and unified-diff parsing.

The parsed shape is what viewers render: files, each with hunks ("chunks"),
each hunk with line-level changes tagged add/del/normal.

Line-number conventions on changes:
- add: ln is the new-side line number
- del: ln is the old-side line number
- normal: ln1 is the old-side line number, ln2 the new-side line number
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from reviewsync.git.branch import HEAD
from reviewsync.git.runner import run_git, run_git_checked

logger = logging.getLogger(__name__)

NULL_DEVICE = "/dev/null"

# Flags that keep the output parseable regardless of user git config
DIFF_FLAGS = ["--no-color", "--no-ext-diff", "--src-prefix=a/", "--dst-prefix=b/"]

HUNK_HEADER = re.compile(r'^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@')
GIT_HEADER = re.compile(r'^diff --git "?a/(.+?)"? "?b/(.+?)"?$')


@dataclass
class DiffChange:
    """One line of a hunk."""
    type: str  # "add", "del", "normal"
    content: str  # includes the leading +/-/space marker
    ln: int | None = None
    ln1: int | None = None
    ln2: int | None = None

    def to_dict(self) -> dict:
        data = {"type": self.type, "content": self.content}
        for key in ("ln", "ln1", "ln2"):
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data


@dataclass
class DiffHunk:
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    content: str  # the @@ header line
    changes: list[DiffChange] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "oldStart": self.old_start,
            "oldLines": self.old_lines,
            "newStart": self.new_start,
            "newLines": self.new_lines,
            "content": self.content,
            "changes": [c.to_dict() for c in self.changes],
        }


@dataclass
class DiffFile:
    from_path: str
    to_path: str
    additions: int = 0
    deletions: int = 0
    chunks: list[DiffHunk] = field(default_factory=list)
    new: bool = False
    deleted: bool = False

    @property
    def renamed(self) -> bool:
        return (
            self.from_path != self.to_path
            and self.from_path != NULL_DEVICE
            and self.to_path != NULL_DEVICE
        )

    @property
    def path(self) -> str:
        """Path of the file as it exists on disk after the change, or before a deletion."""
        return self.to_path if self.to_path != NULL_DEVICE else self.from_path

    def to_dict(self) -> dict:
        return {
            "from": self.from_path,
            "to": self.to_path,
            "additions": self.additions,
            "deletions": self.deletions,
            "chunks": [h.to_dict() for h in self.chunks],
            "new": self.new,
            "deleted": self.deleted,
            "renamed": self.renamed,
        }


@dataclass
class DiffResult:
    ref: str
    files: list[DiffFile] = field(default_factory=list)

    @property
    def total_additions(self) -> int:
        return sum(f.additions for f in self.files)

    @property
    def total_deletions(self) -> int:
        return sum(f.deletions for f in self.files)

    def to_dict(self) -> dict:
        return {
            "ref": self.ref,
            "files": [f.to_dict() for f in self.files],
            "totalAdditions": self.total_additions,
            "totalDeletions": self.total_deletions,
        }


def _strip_prefix(path: str) -> str:
    """Turn '--- a/foo' / '+++ b/foo' targets into repo-relative paths."""
    path = path.strip()
    if "\t" in path:
        path = path.split("\t", 1)[0]
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        path = path[1:-1]
    if path == NULL_DEVICE:
        return NULL_DEVICE
    if path.startswith("a/") or path.startswith("b/"):
        return path[2:]
    return path


def parse_unified_diff(text: str) -> list[DiffFile]:
    """
    Parse `git diff` output into DiffFile records.

    Handles new/deleted/renamed files, binary files (no hunks) and
    "\\ No newline at end of file" markers (skipped).
    """
    files: list[DiffFile] = []
    current: DiffFile | None = None
    hunk: DiffHunk | None = None
    old_ln = new_ln = 0

    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    for line in lines:
        if line.startswith("diff --git "):
            match = GIT_HEADER.match(line)
            from_path, to_path = (match.group(1), match.group(2)) if match else ("", "")
            current = DiffFile(from_path=from_path, to_path=to_path)
            files.append(current)
            hunk = None
            continue

        if current is None:
            continue

        if hunk is None:
            # File header section
            if line.startswith("new file mode"):
                current.new = True
                current.from_path = NULL_DEVICE
            elif line.startswith("deleted file mode"):
                current.deleted = True
                current.to_path = NULL_DEVICE
            elif line.startswith("rename from "):
                current.from_path = line[len("rename from "):]
            elif line.startswith("rename to "):
                current.to_path = line[len("rename to "):]
            elif line.startswith("--- "):
                current.from_path = _strip_prefix(line[4:])
            elif line.startswith("+++ "):
                current.to_path = _strip_prefix(line[4:])

        match = HUNK_HEADER.match(line)
        if match:
            old_ln = int(match.group(1))
            new_ln = int(match.group(3))
            hunk = DiffHunk(
                old_start=old_ln,
                old_lines=int(match.group(2)) if match.group(2) is not None else 1,
                new_start=new_ln,
                new_lines=int(match.group(4)) if match.group(4) is not None else 1,
                content=line,
            )
            current.chunks.append(hunk)
            continue

        if hunk is None:
            continue

        if line.startswith("+"):
            hunk.changes.append(DiffChange(type="add", content=line, ln=new_ln))
            current.additions += 1
            new_ln += 1
        elif line.startswith("-"):
            hunk.changes.append(DiffChange(type="del", content=line, ln=old_ln))
            current.deletions += 1
            old_ln += 1
        elif line.startswith("\\"):
            continue
        else:
            hunk.changes.append(DiffChange(type="normal", content=line, ln1=old_ln, ln2=new_ln))
            old_ln += 1
            new_ln += 1

    return files


def _raw_diff(repo: Path, ref: str) -> str:
    """Get raw unified diff text for a ref.

    For the "HEAD" sentinel: tracked changes vs HEAD; if that is empty or HEAD
    has no commit yet, the union of staged and unstaged diffs.
    """
    if ref != HEAD:
        return run_git_checked(["diff"] + DIFF_FLAGS + [ref], repo)

    result = run_git(["diff"] + DIFF_FLAGS + ["HEAD"], repo)
    if result.success and result.stdout.strip():
        return result.stdout
    if not result.success:
        logger.debug(f"git diff HEAD failed, falling back to staged + unstaged: {result.stderr.strip()}")

    staged = run_git_checked(["diff"] + DIFF_FLAGS + ["--cached"], repo)
    unstaged = run_git_checked(["diff"] + DIFF_FLAGS, repo)
    return staged + unstaged


def get_diff(repo: Path, ref: str) -> DiffResult:
    """
    Compute the reviewable diff of the working tree against ref.

    Raises:
        GitCommandError: if git can't produce a diff for ref
    """
    raw = _raw_diff(repo, ref)
    if not raw.strip():
        return DiffResult(ref=ref)
    return DiffResult(ref=ref, files=parse_unified_diff(raw))


def get_diff_paths(repo: Path, ref: str) -> list[Path]:
    """Absolute paths of the files present in the diff, for watching."""
    result = get_diff(repo, ref)
    return [repo / f.path for f in result.files]
