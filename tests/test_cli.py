"""Tests for reviewsync.cli module."""

import json

import pytest

from reviewsync.cli import EXIT_INVALID, EXIT_TRAVERSAL, main


def run(repo, *args) -> int:
    return main(["--repo", str(repo), *args])


def comment_ids(repo, capsys) -> list[str]:
    capsys.readouterr()
    assert run(repo, "show", "--json") == 0
    return [c["id"] for c in json.loads(capsys.readouterr().out)["comments"]]


class TestComments:
    def test_comment_then_show(self, repo, capsys):
        assert run(repo, "comment", "app.py", "1", "Why 1?", "--end-line", "2") == 0
        assert "Added comment" in capsys.readouterr().out

        assert run(repo, "show") == 0
        out = capsys.readouterr().out
        assert "Status:     submitted" in out
        assert "app.py:1-2" in out
        assert "Why 1?" in out

    def test_resolve_and_reopen(self, repo, capsys):
        run(repo, "comment", "app.py", "1", "Why 1?")
        (comment_id,) = comment_ids(repo, capsys)

        assert run(repo, "resolve", comment_id) == 0
        assert "Review status: resolved" in capsys.readouterr().out

        assert run(repo, "reply", comment_id, "Not quite") == 0
        capsys.readouterr()
        assert run(repo, "show", "--json") == 0
        doc = json.loads(capsys.readouterr().out)
        assert doc["status"] == "submitted"
        assert doc["comments"][0]["thread"][0]["body"] == "Not quite"

    def test_delete(self, repo, capsys):
        run(repo, "comment", "app.py", "1", "Why 1?")
        (comment_id,) = comment_ids(repo, capsys)
        assert run(repo, "delete", comment_id) == 0
        assert comment_ids(repo, capsys) == []

    def test_unknown_comment(self, repo, capsys):
        assert run(repo, "resolve", "missing") == 1
        assert "not found" in capsys.readouterr().out

    def test_end_line_before_line(self, repo, capsys):
        assert run(repo, "comment", "app.py", "5", "x", "--end-line", "2") == EXIT_INVALID
        assert "ERROR" in capsys.readouterr().out

    def test_summary_from_file(self, repo, tmp_path, capsys):
        summary = tmp_path / "summary.json"
        summary.write_text(json.dumps({"global": "Returns 2 now", "testPlan": [{"description": "run", "expected": "2"}]}))
        assert run(repo, "summary", str(summary)) == 0
        assert run(repo, "show") == 0
        assert "Returns 2 now" in capsys.readouterr().out

    def test_summary_file_missing(self, repo, tmp_path):
        assert run(repo, "summary", str(tmp_path / "nope.json")) == EXIT_INVALID


class TestReads:
    def test_diff(self, repo, capsys):
        (repo / "app.py").write_text("def main():\n    return 2\n")
        assert run(repo, "diff") == 0
        out = capsys.readouterr().out
        assert "app.py" in out
        assert "+1" in out

    def test_diff_clean(self, repo, capsys):
        assert run(repo, "diff") == 0
        assert "No changes against HEAD" in capsys.readouterr().out

    def test_diff_bad_ref(self, repo, capsys):
        assert run(repo, "--ref", "no-such-ref", "diff") == 1

    def test_diff_against_other_ref(self, repo, git, capsys):
        base = git(repo, "rev-parse", "HEAD")
        (repo / "README.md").write_text("# demo\nmore\n")
        git(repo, "commit", "--quiet", "-am", "second")
        assert run(repo, "diff", "--ref", base) == 0
        assert "README.md" in capsys.readouterr().out

    def test_file(self, repo, capsys):
        assert run(repo, "file", "README.md") == 0
        assert capsys.readouterr().out == "# demo\n"

    def test_file_traversal(self, repo, capsys):
        assert run(repo, "file", "../secret") == EXIT_TRAVERSAL
        assert "Path traversal" in capsys.readouterr().out

    def test_file_missing(self, repo, capsys):
        assert run(repo, "file", "nope.txt") == 1


class TestErrors:
    def test_not_a_repository(self, tmp_path, capsys):
        plain = tmp_path / "plain"
        plain.mkdir()
        assert run(plain, "show") == EXIT_INVALID
        assert "Not inside a git repository" in capsys.readouterr().out

    def test_requires_command(self):
        with pytest.raises(SystemExit):
            main([])
