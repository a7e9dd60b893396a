"""tests for conversation detail fetching."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from chatgpt2archive.api.fetcher import fetch_conversation
from chatgpt2archive.core.errors import TransportError


@pytest.mark.asyncio
async def test_fetch_builds_record_from_detail() -> None:
    """detail payload is adapted into a ConversationRecord."""
    client = MagicMock()
    client.get_json = AsyncMock(
        return_value={
            "conversation_id": "conv-1",
            "title": "Freezing Rye Bread",
            "create_time": 1700000000.5,
            "update_time": 1700000100.0,
            "default_model_slug": "gpt-4o",
            "current_node": "b",
            "mapping": {
                "a": {
                    "id": "a",
                    "parent": None,
                    "message": {
                        "id": "m-a",
                        "author": {"role": "user"},
                        "content": {"parts": ["Can I freeze rye bread?"]},
                        "create_time": 1700000001.0,
                    },
                },
                "b": {
                    "id": "b",
                    "parent": "a",
                    "message": {
                        "id": "m-b",
                        "author": {"role": "assistant"},
                        "content": {"parts": ["Yes."]},
                    },
                },
            },
        }
    )

    record = await fetch_conversation(client, "conv-1")

    client.get_json.assert_awaited_once_with("/conversation/conv-1")
    assert record.id == "conv-1"
    assert record.title == "Freezing Rye Bread"
    assert record.model == "gpt-4o"
    assert record.create_time == 1700000000.5
    assert [m.content for m in record.messages] == ["Can I freeze rye bread?", "Yes."]
    assert record.messages[1].create_time is None


@pytest.mark.asyncio
async def test_fetch_applies_defaults() -> None:
    """missing title, timestamps and model fall back to defaults."""
    client = MagicMock()
    client.get_json = AsyncMock(return_value={})

    record = await fetch_conversation(client, "conv-2")

    assert record.id == "conv-2"
    assert record.title == "Untitled"
    assert record.create_time is None
    assert record.update_time is None
    assert record.model is None
    assert record.messages == ()


@pytest.mark.asyncio
async def test_fetch_propagates_errors() -> None:
    """request errors are raised to the caller."""
    client = MagicMock()
    client.get_json = AsyncMock(side_effect=TransportError("API error 500"))

    with pytest.raises(TransportError):
        await fetch_conversation(client, "conv-3")
