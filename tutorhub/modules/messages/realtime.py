import asyncio
import logging
from typing import Optional
from uuid import uuid4

logger = logging.getLogger(__name__)


def record_from_payload(payload) -> Optional[dict]:
    """Pull the inserted row out of a postgres_changes payload."""
    if not isinstance(payload, dict):
        return None
    data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    record = data.get("record") or data.get("new") or payload.get("new")
    return record if isinstance(record, dict) else None


class RealtimeMessageFeed:
    """
    Live inserts on `messages` for one conversation.

    Use as an async context manager: the realtime channel is subscribed on
    enter and always removed on exit, including when the body raises.
    Rows already in the conversation (e.g. our own sends) are not delivered
    twice. Pass the caller's `access_token` so the channel is authorised as
    that user rather than the anon role.
    """

    def __init__(self, async_client, conversation, access_token=None):
        self._client = async_client
        self._access_token = access_token
        self.conversation = conversation
        self._channel = None
        self._queue = asyncio.Queue()

    @property
    def active(self) -> bool:
        return self._channel is not None

    async def __aenter__(self):
        loop = asyncio.get_running_loop()

        # postgres_changes are filtered by row-level security for this token
        if self._access_token:
            await self._client.realtime.set_auth(self._access_token)

        def on_insert(payload):
            row = record_from_payload(payload)
            if row is not None:
                loop.call_soon_threadsafe(self._deliver, row)

        name = f"chat:{self.conversation.teacher_id}:{self.conversation.student_id}:{uuid4().hex[:8]}"
        channel = self._client.channel(name)
        channel.on_postgres_changes(
            "INSERT",
            schema="public",
            table="messages",
            filter=f"student_id=eq.{self.conversation.student_id}",
            callback=on_insert,
        )
        self._channel = channel
        try:
            await channel.subscribe()
        except Exception:
            await self._release()
            raise
        logger.info("Subscribed to %s", name)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self._release()
        return False

    def _deliver(self, row: dict) -> None:
        if self.conversation.append(row):
            self._queue.put_nowait(row)

    async def next_message(self) -> dict:
        return await self._queue.get()

    async def _release(self) -> None:
        if self._channel is None:
            return
        channel, self._channel = self._channel, None
        try:
            await self._client.remove_channel(channel)
            logger.info("Realtime channel released")
        except Exception:
            logger.exception("Failed to remove realtime channel")
