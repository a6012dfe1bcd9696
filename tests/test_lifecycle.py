"""Tests for reviewsync.lib.lifecycle module."""

import pytest
from transitions import MachineError

from reviewsync.lib.lifecycle import (
    STATES,
    TRANSITIONS,
    TRIGGER_FOR,
    ReviewLifecycle,
    derive_status,
    recompute_status,
)
from reviewsync.lib.models import Comment, ReviewDocument


def comment(status: str, comment_id: str = "c1") -> Comment:
    return Comment(
        id=comment_id,
        file="app.py",
        line=1,
        body="x",
        status=status,
        created_at="2024-01-01T00:00:00.000Z",
    )


class TestLifecycleDefinitions:
    def test_states(self):
        assert STATES == ["draft", "submitted", "resolved"]

    def test_every_transition_has_a_trigger(self):
        for t in TRANSITIONS:
            assert TRIGGER_FOR[(t["source"], t["dest"])] == t["trigger"]

    def test_nothing_returns_to_draft(self):
        assert all(t["dest"] != "draft" for t in TRANSITIONS)


class TestDeriveStatus:
    def test_never_submitted_is_draft(self):
        assert derive_status([], None) == "draft"

    def test_pending_comment_is_submitted(self):
        assert derive_status([comment("pending")], "2024-01-01T00:00:00.000Z") == "submitted"

    def test_all_resolved_is_resolved(self):
        comments = [comment("resolved", "a"), comment("resolved", "b")]
        assert derive_status(comments, "2024-01-01T00:00:00.000Z") == "resolved"

    def test_one_pending_keeps_submitted(self):
        comments = [comment("resolved", "a"), comment("pending", "b")]
        assert derive_status(comments, "2024-01-01T00:00:00.000Z") == "submitted"

    def test_all_deleted_after_submit_is_resolved(self):
        assert derive_status([], "2024-01-01T00:00:00.000Z") == "resolved"


class TestReviewLifecycle:
    def test_unknown_status_defaults_to_draft(self):
        assert ReviewLifecycle("bogus").state == "draft"

    def test_full_cycle(self):
        lifecycle = ReviewLifecycle("draft")
        assert lifecycle.advance_to("submitted") == "submitted"
        assert lifecycle.advance_to("resolved") == "resolved"
        assert lifecycle.advance_to("submitted") == "submitted"

    def test_same_state_is_noop(self):
        assert ReviewLifecycle("submitted").advance_to("submitted") == "submitted"

    def test_back_to_draft_rejected(self):
        with pytest.raises(MachineError):
            ReviewLifecycle("submitted").advance_to("draft")

    def test_logs_transitions(self, caplog):
        with caplog.at_level("INFO", logger="reviewsync.lib.lifecycle"):
            ReviewLifecycle("draft", label="main").advance_to("submitted")
        assert "[FSM] main: draft -> submitted (submit)" in caplog.text


class TestRecomputeStatus:
    def test_first_comment_submits(self):
        doc = ReviewDocument.empty("HEAD", "main")
        doc.comments.append(comment("pending"))
        doc.submitted_at = "2024-01-01T00:00:00.000Z"
        assert recompute_status(doc) == "submitted"
        assert doc.status == "submitted"

    def test_reply_reopens_resolved_review(self):
        doc = ReviewDocument(
            ref="HEAD",
            branch="main",
            status="resolved",
            submitted_at="2024-01-01T00:00:00.000Z",
            comments=[comment("pending")],
        )
        assert recompute_status(doc) == "submitted"

    def test_illegal_move_keeps_status(self):
        doc = ReviewDocument(ref="HEAD", branch="main", status="submitted")
        assert recompute_status(doc) == "submitted"
