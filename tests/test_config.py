"""Tests for reviewsync.lib.config module."""

import re
from unittest.mock import patch

import pytest

from reviewsync.lib.config import (
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_WATCH_DEBOUNCE,
    check_git,
    load_config_file,
    startup,
)
from reviewsync.lib.errors import RepositoryNotFoundError, ValidationError


def write_config(repo, text: str) -> None:
    config_dir = repo / ".claude"
    config_dir.mkdir(exist_ok=True)
    (config_dir / "reviewsync.yaml").write_text(text)


class TestLoadConfigFile:
    """Test .claude/reviewsync.yaml loading."""

    def test_returns_empty_when_file_missing(self, tmp_path):
        assert load_config_file(tmp_path) == {}

    def test_loads_known_keys(self, tmp_path):
        write_config(tmp_path, "ref: origin/main\nfetch_timeout: 3\nwatch_debounce: 0.5\n")
        assert load_config_file(tmp_path) == {"ref": "origin/main", "fetch_timeout": 3, "watch_debounce": 0.5}

    def test_empty_file(self, tmp_path):
        write_config(tmp_path, "")
        assert load_config_file(tmp_path) == {}

    def test_ignores_unknown_keys(self, tmp_path, caplog):
        write_config(tmp_path, "ref: main\ncolor: blue\n")
        assert load_config_file(tmp_path) == {"ref": "main"}
        assert "color" in caplog.text

    def test_invalid_yaml(self, tmp_path):
        write_config(tmp_path, "ref: [unclosed\n")
        with pytest.raises(ValidationError, match="Invalid YAML"):
            load_config_file(tmp_path)

    def test_must_be_mapping(self, tmp_path):
        write_config(tmp_path, "- a\n- b\n")
        with pytest.raises(ValidationError, match="mapping"):
            load_config_file(tmp_path)

    @pytest.mark.parametrize("text", [
        "ref: ''\n",
        "review_file: ../escape.json\n",
        "fetch_timeout: -1\n",
        "fetch_timeout: true\n",
        "watch_debounce: soon\n",
    ])
    def test_rejects_bad_values(self, tmp_path, text):
        write_config(tmp_path, text)
        with pytest.raises(ValidationError):
            load_config_file(tmp_path)


class TestStartup:
    def test_defaults_without_remote(self, repo):
        config = startup(cwd=repo)
        assert config.repo_root.resolve() == repo.resolve()
        assert config.ref == "HEAD"
        assert config.branch == "main"
        assert not config.detached
        assert re.fullmatch(r"[0-9a-f]{32}", config.token)
        assert config.review_path == config.repo_root / ".claude" / "review.json"
        assert config.fetch_timeout == DEFAULT_FETCH_TIMEOUT
        assert config.watch_debounce == DEFAULT_WATCH_DEBOUNCE

    def test_tokens_differ_per_session(self, repo):
        assert startup(cwd=repo).token != startup(cwd=repo).token

    def test_explicit_ref_wins(self, repo):
        write_config(repo, "ref: from-file\n")
        assert startup(cwd=repo, ref="from-flag").ref == "from-flag"

    def test_ref_from_file(self, repo):
        write_config(repo, "ref: from-file\nreview_file: other.json\n")
        config = startup(cwd=repo)
        assert config.ref == "from-file"
        assert config.review_path.name == "other.json"

    def test_merge_base_on_feature_branch(self, repo_with_origin, git):
        initial = git(repo_with_origin, "rev-parse", "HEAD")
        git(repo_with_origin, "checkout", "--quiet", "-b", "feature")
        (repo_with_origin / "x.py").write_text("x = 1\n")
        git(repo_with_origin, "add", "x.py")
        git(repo_with_origin, "commit", "--quiet", "-m", "x")
        config = startup(cwd=repo_with_origin)
        assert config.ref == initial
        assert config.branch == "feature"

    def test_fractional_fetch_timeout_is_kept(self, repo):
        write_config(repo, "fetch_timeout: 0.5\n")
        with patch("reviewsync.lib.config.merge_base", return_value=None) as mock_merge_base:
            config = startup(cwd=repo)
        assert config.fetch_timeout == 0.5
        assert mock_merge_base.call_args.kwargs["fetch_timeout"] == 0.5

    def test_detached_head(self, repo, git):
        git(repo, "checkout", "--quiet", "--detach")
        assert startup(cwd=repo).detached

    def test_not_a_repository(self, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        with pytest.raises(RepositoryNotFoundError):
            startup(cwd=plain)

    def test_git_missing(self):
        with patch("reviewsync.lib.config.shutil.which", return_value=None):
            with pytest.raises(RepositoryNotFoundError, match="not installed"):
                check_git()
