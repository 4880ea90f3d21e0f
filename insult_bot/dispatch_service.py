"""
Command dispatch for Insult Bot.
Runs the cache operation a classified message asks for and sends the reply.
"""

import asyncio
import logging

from .command_service import (
    AddWord,
    CommandMatch,
    InsultRequest,
    RejectedAddWord,
    classify,
)
from .config import REPLY_ADDED, REPLY_DUPLICATE, REPLY_EMPTY_CACHE, REPLY_REJECTED
from .errors import InsultBotError
from .vocab_service import InsertResult, WordCacheCell

logger = logging.getLogger(__name__)


class Dispatcher:
    """Glue between the command router, the shared word cache and the reply sink.

    Args:
        cell: WordCacheCell yielding the shared, lazily loaded cache
        store: Remote word store receiving newly added words
        sink: Reply sink with a synchronous send(channel, text)
    """

    def __init__(self, cell: WordCacheCell, store, sink):
        self.cell = cell
        self.store = store
        self.sink = sink

    async def _run_blocking(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def reply(self, channel: str, text: str) -> None:
        await self._run_blocking(self.sink.send, channel, text)

    async def insult(self, target: str, channel: str) -> None:
        cache = await self.cell.get()
        phrase = cache.pick_phrase()
        if phrase is None:
            message = REPLY_EMPTY_CACHE
        else:
            message = f"{target} is {phrase}"
        await self.reply(channel, message)

    async def add_word(self, command: AddWord, channel: str) -> None:
        cache = await self.cell.get()
        if cache.insert(command.category, command.word) is InsertResult.ALREADY_PRESENT:
            await self.reply(channel, REPLY_DUPLICATE)
            return

        try:
            await self._run_blocking(self.store.put, command.word, command.category)
        except InsultBotError as e:
            # The word stays in memory for the rest of the process
            logger.error(f"Failed to persist {command.category.value} {command.word!r}: {e}")
        await self.reply(channel, REPLY_ADDED)

    async def handle_message(self, text: str, user: str, channel: str) -> CommandMatch:
        """Classify one message and carry out its command.

        Cache initialization errors propagate; nothing is sent to the
        channel in that case.

        Returns:
            The CommandMatch the message was classified as
        """
        command = classify(text, user)
        if isinstance(command, InsultRequest):
            await self.insult(command.target, channel)
        elif isinstance(command, AddWord):
            await self.add_word(command, channel)
        elif isinstance(command, RejectedAddWord):
            await self.reply(channel, REPLY_REJECTED)
        return command
