"""Rebuilds the visible transcript from a conversation's message graph.

ChatGPT stores a conversation as a graph of nodes keyed by id in ``mapping``::

    {node_id: {"id": ..., "message": {...}, "parent": node_id, "children": [...]}}

``current_node`` is the leaf of the branch the user last looked at. Walking
parent links from that leaf up to the root and reversing gives the transcript
in chronological order. Edited or regenerated branches are not exported.
"""

from typing import Any, Optional

from chatgpt2archive.core.models import TranscriptMessage


def traverse_messages(conversation: dict[str, Any]) -> list[TranscriptMessage]:
    """
    extracts the ordered, visible messages of a conversation.

    Malformed graphs never raise: missing nodes end the walk, repeated ids
    (cycles) end the walk, and unreadable nodes are skipped.

    Args:
        conversation: raw conversation detail with mapping and current_node

    Returns:
        messages from root to current_node, without system messages
    """
    mapping = conversation.get("mapping")
    if not mapping or not isinstance(mapping, dict):
        return []

    current_node = conversation.get("current_node")
    if not current_node:
        return []

    messages = []
    for node_id in _walk_to_root(mapping, current_node):
        message = _visible_message(mapping.get(node_id))
        if message is not None:
            messages.append(message)
    return messages


def _walk_to_root(mapping: dict[str, Any], leaf_id: str) -> list[str]:
    """returns node ids from root to leaf, stopping at gaps and cycles."""
    ordered_ids: list[str] = []
    visited: set[str] = set()
    node_id: Any = leaf_id

    while isinstance(node_id, str) and node_id and node_id not in visited:
        visited.add(node_id)
        ordered_ids.append(node_id)
        node = mapping.get(node_id)
        if not isinstance(node, dict):
            break
        node_id = node.get("parent")

    ordered_ids.reverse()
    return ordered_ids


def _visible_message(node: Any) -> Optional[TranscriptMessage]:
    """converts a graph node to a transcript message, or None if it is not shown."""
    if not isinstance(node, dict):
        return None

    message = node.get("message")
    if not message or not isinstance(message, dict):
        return None

    content = message.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return None

    author = message.get("author")
    role = author.get("role") if isinstance(author, dict) else None
    # system messages form the invisible root of every conversation
    if role == "system":
        return None

    return TranscriptMessage(
        id=message.get("id"),
        role=role,
        content="".join(flatten_part(part) for part in parts),
        create_time=message.get("create_time"),
    )


def flatten_part(part: Any) -> str:
    """
    renders one content part as plain text.

    Args:
        part: a string, a dict with text, or another typed dict (image, file...)

    Returns:
        the text, a "[type]" placeholder for typed non-text parts, or ""
    """
    if isinstance(part, str):
        return part
    if isinstance(part, dict):
        text = part.get("text")
        if text:
            return str(text)
        part_type = part.get("type")
        if part_type:
            return f"[{part_type}]"
    return ""
