"""Fetches one conversation with its full message graph."""

from chatgpt2archive.api.client import ChatGPTClient
from chatgpt2archive.core.models import ConversationRecord
from chatgpt2archive.core.traversal import traverse_messages


async def fetch_conversation(
    client: ChatGPTClient, conversation_id: str
) -> ConversationRecord:
    """
    fetches a conversation and reduces it to its visible transcript.

    Args:
        client: authenticated API client
        conversation_id: id from the conversation listing

    Returns:
        the conversation record to write to the archive

    Raises:
        AuthError, RateLimitError, TransportError: from the underlying request
    """
    data = await client.get_json(f"/conversation/{conversation_id}")
    if not isinstance(data, dict):
        data = {}

    return ConversationRecord(
        id=data.get("conversation_id") or conversation_id,
        title=data.get("title") or "Untitled",
        create_time=data.get("create_time"),
        update_time=data.get("update_time"),
        model=data.get("default_model_slug"),
        messages=tuple(traverse_messages(data)),
    )
