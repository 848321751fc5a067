# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Data models for discussions and per-issue discussion statistics."""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

# Public mailing list archive, currently the only known source.
LORE_SOURCE = "lore"


class DiscussionType(str, Enum):
    """Kind of discussion a thread represents."""

    REPORT = "report"
    PATCH = "patch"
    REMINDER = "reminder"
    MENTION = "mention"


def as_utc(value: Any) -> datetime | None:
    """Normalize a stored timestamp to an aware UTC datetime.

    Accepts datetimes (naive ones are assumed to be UTC, which is how MongoDB
    returns them without ``tz_aware``), ISO 8601 strings and ``None``.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def discussion_key(source: str, discussion_id: str) -> str:
    """Build the document key of the discussion identified by (source, id)."""
    payload = f"{source}\n{discussion_id}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:32]


@dataclass(frozen=True)
class DiscussionMessage:
    """One message of a discussion. Only identity and metadata are kept.

    Attributes:
        id: Message identifier, unique within the source (e.g. Message-ID header)
        time: When the message was sent
        external: True if sent from outside the project
    """
    id: str
    time: datetime
    external: bool = False

    def to_document(self) -> dict[str, Any]:
        return {"id": self.id, "time": self.time, "external": self.external}

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "DiscussionMessage":
        return cls(
            id=doc["id"],
            time=as_utc(doc["time"]),
            external=bool(doc.get("external", False)),
        )


@dataclass(frozen=True)
class Summary:
    """Mergeable message statistics.

    Attributes:
        all_messages: Number of messages ever accepted
        external_messages: Number of accepted messages sent from outside the project
        last_message: Time of the latest message, None if there was none
        last_patch_message: Time of the latest patch message, None if there was none
    """
    all_messages: int = 0
    external_messages: int = 0
    last_message: datetime | None = None
    last_patch_message: datetime | None = None

    def is_empty(self) -> bool:
        """Return True if the summary carries no activity at all."""
        return self == Summary()

    def to_document(self) -> dict[str, Any]:
        return {
            "all_messages": self.all_messages,
            "external_messages": self.external_messages,
            "last_message": self.last_message,
            "last_patch_message": self.last_patch_message,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any] | None) -> "Summary":
        if not doc:
            return cls()
        return cls(
            all_messages=int(doc.get("all_messages", 0)),
            external_messages=int(doc.get("external_messages", 0)),
            last_message=as_utc(doc.get("last_message")),
            last_patch_message=as_utc(doc.get("last_patch_message")),
        )


@dataclass
class Discussion:
    """A message thread observed on one discussion source."""

    source: str
    id: str
    type: str = DiscussionType.REPORT.value
    subject: str = ""
    messages: list[DiscussionMessage] = field(default_factory=list)
    issue_keys: list[str] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)

    @property
    def key(self) -> str:
        """Document key under which the discussion is stored."""
        return discussion_key(self.source, self.id)

    def message_ids(self) -> set[str]:
        return {message.id for message in self.messages}

    def to_document(self) -> dict[str, Any]:
        return {
            "_id": self.key,
            "source": self.source,
            "id": self.id,
            "type": self.type,
            "subject": self.subject,
            "messages": [message.to_document() for message in self.messages],
            "issue_keys": list(self.issue_keys),
            "summary": self.summary.to_document(),
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Discussion":
        return cls(
            source=doc["source"],
            id=doc["id"],
            type=doc.get("type", DiscussionType.REPORT.value),
            subject=doc.get("subject", ""),
            messages=[DiscussionMessage.from_document(m) for m in doc.get("messages", [])],
            issue_keys=list(doc.get("issue_keys", [])),
            summary=Summary.from_document(doc.get("summary")),
        )


@dataclass
class IssueDiscussionInfo:
    """Discussion statistics of one issue for one discussion source."""

    source: str
    summary: Summary = field(default_factory=Summary)

    def to_document(self) -> dict[str, Any]:
        return {"source": self.source, "summary": self.summary.to_document()}

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "IssueDiscussionInfo":
        return cls(source=doc["source"], summary=Summary.from_document(doc.get("summary")))


@dataclass
class DiscussionUpdate:
    """New messages to be merged into a discussion.

    Attributes:
        source: Discussion source the messages come from
        id: Discussion id; resolved beforehand from the reply chain
        type: Discussion type, used when the discussion is created
        subject: Subject, used when the discussion is created
        issue_ids: External (reporting) ids of the referenced issues
        messages: Messages to add
    """
    source: str
    id: str
    type: str = DiscussionType.REPORT.value
    subject: str = ""
    issue_ids: list[str] = field(default_factory=list)
    messages: list[DiscussionMessage] = field(default_factory=list)


@dataclass(frozen=True)
class NewDiscussionMessage:
    """A received message that references one or more issues."""

    id: str
    source: str
    time: datetime
    subject: str = ""
    type: str = DiscussionType.REPORT.value
    issue_ids: tuple[str, ...] = ()
    in_reply_to: str | None = None
    external: bool = False


@dataclass
class MergeResult:
    """Outcome of a successful discussion merge.

    Attributes:
        discussion: Discussion as persisted by the merge
        diff: Summary contribution of the newly accepted messages
        issue_keys: Issues whose summaries received the diff
    """
    discussion: Discussion
    diff: Summary
    issue_keys: list[str] = field(default_factory=list)
