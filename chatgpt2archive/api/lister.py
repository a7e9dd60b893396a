"""Paginated listing of a user's conversations."""

import asyncio
import logging
from typing import Optional

from chatgpt2archive.api.client import ChatGPTClient
from chatgpt2archive.config import PAGE_SIZE, REQUEST_DELAY
from chatgpt2archive.core.models import ConversationSummary
from chatgpt2archive.progress import ProgressObserver, plural, report_progress

logger = logging.getLogger(__name__)

# share of the progress bar given to listing; detail fetches dominate run time
LISTING_PERCENT = 2


async def list_all_conversations(
    client: ChatGPTClient,
    observer: Optional[ProgressObserver] = None,
    page_size: int = PAGE_SIZE,
    request_delay: float = REQUEST_DELAY,
) -> list[ConversationSummary]:
    """
    lists every conversation of the account, page by page.

    A page shorter than page_size is the last one, so no request is made
    past it.

    Args:
        client: authenticated API client
        observer: optional progress sink, told the running count after each page
        page_size: conversations per request (100 is the server maximum)
        request_delay: seconds to wait between pages

    Returns:
        summaries in the order the server lists them

    Raises:
        AuthError, RateLimitError, TransportError: from the underlying request
    """
    conversations: list[ConversationSummary] = []
    offset = 0

    while True:
        data = await client.get_json(
            "/conversations", params={"limit": page_size, "offset": offset}
        )
        items = (data.get("items") if isinstance(data, dict) else None) or []
        conversations.extend(
            ConversationSummary.from_item(item)
            for item in items
            if isinstance(item, dict)
        )
        logger.debug("Listed %d conversation(s) at offset %d", len(items), offset)

        report_progress(
            observer,
            LISTING_PERCENT,
            f"Found {plural(len(conversations), 'conversation')}...",
        )

        if len(items) < page_size:
            break
        offset += page_size
        await asyncio.sleep(request_delay)

    return conversations
