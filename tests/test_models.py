"""Tests for data models."""

import dataclasses

import pytest

from chatgpt2archive.core.models import (
    ConversationRecord,
    ConversationSummary,
    FailedConversation,
    TranscriptMessage,
)


def test_summary_from_item() -> None:
    """Test building a summary from a listing item."""
    summary = ConversationSummary.from_item(
        {"id": "conv-1", "title": "Hello", "update_time": "2024-01-01"}
    )

    assert summary == ConversationSummary(id="conv-1", title="Hello")


def test_summary_from_item_without_title() -> None:
    """Test that a missing title stays None."""
    assert ConversationSummary.from_item({"id": "conv-1"}).title is None


def test_record_to_dict_field_order() -> None:
    """Test the archive representation of a conversation."""
    record = ConversationRecord(
        id="conv-1",
        title="Test",
        create_time=1.0,
        update_time=2.0,
        model="gpt-4o",
        messages=(TranscriptMessage(id="m", role="user", content="hi"),),
    )

    data = record.to_dict()

    assert list(data) == ["id", "title", "create_time", "update_time", "model", "messages"]
    assert data["messages"] == [
        {"id": "m", "role": "user", "content": "hi", "create_time": None}
    ]


def test_record_defaults() -> None:
    """Test that optional fields default to None and no messages."""
    record = ConversationRecord(id="conv-1", title="Untitled")

    assert record.to_dict() == {
        "id": "conv-1",
        "title": "Untitled",
        "create_time": None,
        "update_time": None,
        "model": None,
        "messages": [],
    }


def test_record_is_immutable() -> None:
    """Test that records can't be modified after construction."""
    record = ConversationRecord(id="conv-1", title="Test")

    with pytest.raises(dataclasses.FrozenInstanceError):
        record.title = "Changed"  # type: ignore[misc]


def test_failed_conversation_to_dict() -> None:
    """Test the archive representation of a failure."""
    failure = FailedConversation(id="c", title="T", error="API error 500")

    assert failure.to_dict() == {"id": "c", "title": "T", "error": "API error 500"}
