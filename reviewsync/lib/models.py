"""
Review document data model.

Field names are snake_case in Python and camelCase on disk (the external
agent reads and writes the same JSON). Payload models (drafts, patches,
summaries) are validated here before the store mutates anything.
"""

from datetime import datetime, timezone
from typing import Any, Literal, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from reviewsync.lib.errors import ValidationError

SCHEMA_VERSION = 1

DocumentStatus = Literal["draft", "submitted", "resolved"]
CommentStatus = Literal["pending", "resolved"]
Side = Literal["old", "new"]
Author = Literal["user", "ai"]

ModelT = TypeVar("ModelT", bound=BaseModel)


def utc_now_iso() -> str:
    """Current UTC time as ISO 8601 with milliseconds, e.g. 2024-01-01T00:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _check_timestamp(value: str | None) -> str | None:
    if value is None:
        return value
    try:
        datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"not an ISO 8601 timestamp: {value!r}") from None
    return value


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ThreadEntry(_Model):
    """One message in a comment's conversation."""
    author: Author
    body: str = Field(min_length=1)
    created_at: str | None = None

    @field_validator("created_at")
    @classmethod
    def check_timestamps(cls, value):
        return _check_timestamp(value)

    def to_dict(self) -> dict:
        data = {"author": self.author, "body": self.body}
        if self.created_at is not None:
            data["createdAt"] = self.created_at
        return data


class Comment(_Model):
    id: str = Field(min_length=1)
    type: Literal["comment"] = "comment"
    file: str = Field(min_length=1)
    line: int = Field(gt=0, strict=True)
    end_line: int | None = Field(default=None, gt=0, strict=True)
    side: Side = "new"
    body: str = Field(min_length=1)
    status: CommentStatus
    response: str | None = None  # legacy single reply, superseded by thread
    thread: list[ThreadEntry] = Field(default_factory=list)
    created_at: str
    resolved_at: str | None = None

    @field_validator("created_at", "resolved_at")
    @classmethod
    def check_timestamps(cls, value):
        return _check_timestamp(value)

    @model_validator(mode="after")
    def check_end_line(self):
        if self.end_line is not None and self.end_line < self.line:
            raise ValueError("endLine must be >= line")
        return self

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "type": self.type,
            "file": self.file,
            "line": self.line,
        }
        if self.end_line is not None:
            data["endLine"] = self.end_line
        data.update({
            "side": self.side,
            "body": self.body,
            "status": self.status,
            "response": self.response,
            "thread": [t.to_dict() for t in self.thread],
            "createdAt": self.created_at,
            "resolvedAt": self.resolved_at,
        })
        return data


class TestPlanItem(_Model):
    __test__ = False  # not a pytest class

    description: str = Field(min_length=1)
    expected: str = Field(min_length=1)


class Summary(_Model):
    """Agent-written overview of the change."""
    global_: str = Field(alias="global", min_length=1)
    files: dict[str, str] = Field(default_factory=dict)
    test_plan: list[TestPlanItem] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "global": self.global_,
            "files": dict(self.files),
            "testPlan": [{"description": t.description, "expected": t.expected} for t in self.test_plan],
        }


class ReviewDocument(_Model):
    """The persisted root (.claude/review.json)."""
    version: Literal[1] = SCHEMA_VERSION
    round: int = Field(default=1, gt=0, strict=True)
    status: DocumentStatus = "draft"
    ref: str = Field(min_length=1)
    branch: str = Field(min_length=1)
    metadata: dict[str, Any] = Field(default_factory=dict)
    submitted_at: str | None = None
    comments: list[Comment] = Field(default_factory=list)
    summary: Summary | None = None

    @field_validator("submitted_at")
    @classmethod
    def check_timestamps(cls, value):
        return _check_timestamp(value)

    @model_validator(mode="after")
    def check_unique_ids(self):
        seen = set()
        for comment in self.comments:
            if comment.id in seen:
                raise ValueError(f"duplicate comment id {comment.id!r}")
            seen.add(comment.id)
        return self

    @classmethod
    def empty(cls, ref: str, branch: str) -> "ReviewDocument":
        return cls(ref=ref, branch=branch)

    def find(self, comment_id: str) -> Comment | None:
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        return None

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "round": self.round,
            "status": self.status,
            "ref": self.ref,
            "branch": self.branch,
            "metadata": self.metadata,
            "submittedAt": self.submitted_at,
            "comments": [c.to_dict() for c in self.comments],
            "summary": self.summary.to_dict() if self.summary else None,
        }


class CommentDraft(_Model):
    """A new comment as submitted by the reviewer."""
    file: str = Field(min_length=1)
    line: int = Field(gt=0, strict=True)
    end_line: int | None = Field(default=None, gt=0, strict=True)
    side: Side = "new"
    body: str = Field(min_length=1)

    @model_validator(mode="after")
    def check_end_line(self):
        if self.end_line is not None and self.end_line < self.line:
            raise ValueError("endLine must be >= line")
        return self


class CommentPatch(_Model):
    """
    Partial update of one comment.

    Presence is tracked separately from value: an omitted resolvedAt leaves
    the comment alone, while "resolvedAt": null clears it (reopen).
    """
    status: CommentStatus | None = None
    body: str | None = Field(default=None, min_length=1)
    resolved_at: str | None = None
    reply: str | None = Field(default=None, min_length=1)

    @field_validator("resolved_at")
    @classmethod
    def check_timestamps(cls, value):
        return _check_timestamp(value)

    @model_validator(mode="after")
    def check_nulls(self):
        for name in ("status", "body", "reply"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} may not be null")
        return self

    def has(self, name: str) -> bool:
        """True if the field was present in the payload (even as null)."""
        return name in self.model_fields_set


def parse_model(model: type[ModelT], payload: Any) -> ModelT:
    """
    Validate a payload against a model.

    Raises:
        ValidationError: with the first pydantic error's location and message
    """
    if not isinstance(payload, dict):
        raise ValidationError(f"Expected a JSON object, got {type(payload).__name__}")
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        path = ".".join(str(p) for p in first["loc"]) or None
        raise ValidationError(f"Invalid {model.__name__}: {first['msg']}", path) from None
