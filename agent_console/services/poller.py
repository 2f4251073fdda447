"""Mailbox queue poller."""

import structlog

from agent_console.constants import ENTITY_QUEUE, GMAIL_POLL_PATH
from agent_console.exceptions import AgentServiceError
from agent_console.models.agent import PollResponse, QueueItem, parse_snapshot
from agent_console.services.state_store import StateStore
from agent_console.services.transport import TransportClient

logger = structlog.get_logger(__name__)


class MailboxPoller:
    """
    Fetches the current mailbox queue snapshot on demand.

    Queue visibility is best-effort: a failed poll empties the queue view and
    returns an empty list instead of raising, so it never blocks the other
    refreshes running beside it.
    """

    def __init__(self, transport: TransportClient, store: StateStore) -> None:
        self.transport = transport
        self.store = store

    async def poll_queue(self) -> list[QueueItem]:
        """
        Poll the mailbox and replace the stored queue with the result.

        Returns:
            The polled items, or an empty list when the poll failed.
        """
        try:
            body = await self.transport.get(GMAIL_POLL_PATH)
            items = parse_snapshot(PollResponse, body or {}).items
        except AgentServiceError as e:
            logger.warning("queue_poll_failed", error=str(e))
            self.store.clear_queue()
            self.store.record_failure(ENTITY_QUEUE, e)
            return []

        self.store.set_queue(items)
        logger.debug("queue_polled", count=len(items))
        return items
