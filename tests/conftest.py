"""Shared fixtures: throwaway git repositories."""

import subprocess
from pathlib import Path

import pytest


def run_git(repo: Path, *args: str) -> str:
    result = subprocess.run(["git", "-C", str(repo), *args], capture_output=True, text=True)
    assert result.returncode == 0, f"git {' '.join(args)} failed: {result.stderr}"
    return result.stdout.strip()


def init_repo(path: Path, commit: bool = True) -> Path:
    """Create a repository on branch main, optionally with one commit."""
    path.mkdir(parents=True, exist_ok=True)
    run_git(path, "init", "--quiet")
    run_git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    run_git(path, "config", "user.email", "dev@example.com")
    run_git(path, "config", "user.name", "Dev")
    run_git(path, "config", "commit.gpgsign", "false")
    if commit:
        (path / "app.py").write_text("def main():\n    return 1\n")
        (path / "README.md").write_text("# demo\n")
        run_git(path, "add", ".")
        run_git(path, "commit", "--quiet", "-m", "initial")
    return path


@pytest.fixture
def git():
    """Run a git command in a repo and return stripped stdout."""
    return run_git


@pytest.fixture
def repo(tmp_path):
    """A repository on main with app.py and README.md committed."""
    return init_repo(tmp_path / "repo")


@pytest.fixture
def empty_repo(tmp_path):
    """A repository with no commits yet."""
    return init_repo(tmp_path / "empty", commit=False)


@pytest.fixture
def repo_with_origin(tmp_path, repo):
    """repo plus a bare clone registered as origin and fetched."""
    origin = tmp_path / "origin.git"
    subprocess.run(["git", "clone", "--quiet", "--bare", str(repo), str(origin)], check=True, capture_output=True)
    run_git(repo, "remote", "add", "origin", str(origin))
    run_git(repo, "fetch", "--quiet", "origin")
    return repo
