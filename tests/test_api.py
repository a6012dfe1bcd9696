"""Tests for reviewsync.api module."""

import json

import pytest

from reviewsync.api import ReviewApi, status_for
from reviewsync.git.branch import HEAD
from reviewsync.lib.errors import (
    FileNotFoundInRepoError,
    GitCommandError,
    NotFoundError,
    PathTraversalError,
    UnauthorizedError,
    ValidationError,
)
from reviewsync.notify import NotificationHub
from reviewsync.store import ReviewStore

TOKEN = "a" * 32


class Recorder:
    def __init__(self):
        self.frames: list[str] = []

    def write(self, data: str) -> None:
        self.frames.append(data)

    def close(self) -> None:
        pass

    @property
    def event_names(self) -> list[str]:
        return [f.split("\n", 1)[0][len("event: "):] for f in self.frames]

    def last_payload(self) -> dict:
        return json.loads(self.frames[-1].split("\n")[1][len("data: "):])


@pytest.fixture
def api(repo):
    store = ReviewStore(repo, HEAD, "main")
    return ReviewApi(store=store, hub=NotificationHub(), repo_root=repo, ref=HEAD, token=TOKEN)


@pytest.fixture
def viewer(api):
    recorder = Recorder()
    assert api.subscribe(recorder)
    return recorder


def add(api, **overrides) -> dict:
    payload = {"file": "app.py", "line": 1, "body": "Why return 1?"}
    payload.update(overrides)
    return api.add_comment(payload)


class TestToken:
    def test_accepts_session_token(self, api):
        api.check_token(TOKEN)

    @pytest.mark.parametrize("token", [None, "", "b" * 32, TOKEN[:-1]])
    def test_rejects_other_tokens(self, api, token):
        with pytest.raises(UnauthorizedError):
            api.check_token(token)


class TestReads:
    def test_get_document(self, api):
        doc = api.get_document()
        assert doc["status"] == "draft"
        assert doc["ref"] == HEAD

    def test_get_diff_default_ref(self, api, repo):
        (repo / "app.py").write_text("def main():\n    return 2\n")
        diff = api.get_diff()
        assert diff["ref"] == HEAD
        assert [f["to"] for f in diff["files"]] == ["app.py"]

    def test_get_diff_bad_ref(self, api):
        with pytest.raises(GitCommandError):
            api.get_diff("no-such-ref")

    def test_get_file(self, api):
        assert api.get_file("README.md") == "# demo\n"

    def test_get_file_requires_path(self, api):
        with pytest.raises(ValidationError):
            api.get_file("")

    def test_get_file_traversal(self, api):
        with pytest.raises(PathTraversalError):
            api.get_file("../../etc/passwd")


class TestWrites:
    def test_add_comment_broadcasts(self, api, viewer):
        doc = add(api)
        assert len(doc["comments"]) == 1
        assert viewer.event_names == ["connected", "comments-updated"]
        assert viewer.last_payload() == doc

    def test_invalid_comment_does_not_broadcast(self, api, viewer):
        with pytest.raises(ValidationError):
            add(api, line=0)
        assert viewer.event_names == ["connected"]
        assert api.get_document()["comments"] == []

    def test_update_comment(self, api, viewer):
        comment_id = add(api)["comments"][0]["id"]
        comment = api.update_comment(comment_id, {"status": "resolved"})
        assert comment["status"] == "resolved"
        assert viewer.last_payload()["status"] == "resolved"

    def test_update_validates_before_lookup(self, api):
        with pytest.raises(ValidationError):
            api.update_comment("unknown", {"status": "bogus"})

    def test_update_unknown_id(self, api):
        with pytest.raises(NotFoundError):
            api.update_comment("unknown", {"status": "resolved"})

    @pytest.mark.parametrize("comment_id", ["", "../x", "a b", "id/1"])
    def test_malformed_id_is_not_found(self, api, comment_id):
        with pytest.raises(NotFoundError):
            api.update_comment(comment_id, {"status": "resolved"})

    def test_delete_comment(self, api, viewer):
        comment_id = add(api)["comments"][0]["id"]
        assert api.delete_comment(comment_id) == {"ok": True}
        assert viewer.last_payload()["comments"] == []

    def test_delete_unknown(self, api, viewer):
        with pytest.raises(NotFoundError):
            api.delete_comment("unknown")
        assert viewer.event_names == ["connected"]

    def test_set_summary(self, api, viewer):
        doc = api.set_summary({"global": "Refactors main", "files": {"app.py": "returns 2"}})
        assert doc["summary"]["global"] == "Refactors main"
        assert viewer.event_names[-1] == "comments-updated"


class TestStatusFor:
    @pytest.mark.parametrize("error,code", [
        (ValidationError("bad"), 400),
        (UnauthorizedError("no"), 401),
        (PathTraversalError("../x"), 403),
        (NotFoundError("abc"), 404),
        (FileNotFoundInRepoError("x.py"), 404),
        (GitCommandError(["diff"], "fatal"), 500),
        (RuntimeError("boom"), 500),
    ])
    def test_codes(self, error, code):
        assert status_for(error) == code
