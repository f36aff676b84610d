"""
Automod Dispatcher Service.

Takes inbound automod events from the listener cog and runs each one as its
own asyncio task. A per-guild semaphore bounds how many events of one guild
are enforced at the same time, so a raid in one guild cannot starve the
others.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Optional, Set

from warden.automod.enforcer import AutomodEnforcer
from warden.configuration.app_configuration import app_config
from warden.datatypes.action_datatypes import EnforcementReport
from warden.datatypes.discord_datatypes import GuildID
from warden.datatypes.event_datatypes import (
    AutomodEvent,
    MemberJoinEvent,
    MemberUpdateEvent,
    MessageEvent,
    ReactionEvent,
    event_guild_id,
)
from warden.util.logger import get_logger

logger = get_logger("automod_dispatcher")

Handler = Callable[[AutomodEvent], Awaitable[Optional[EnforcementReport]]]


class AutomodDispatcher:
    """
    Queue in front of the enforcer.

    Design notes
    ------------
    * One shared asyncio.Queue; the dispatch loop pops events in arrival
      order and spawns one task per event.
    * One asyncio.Semaphore per guild, created lazily, sized by
      ``automod.max_concurrent_events_per_guild``.
    * Events are never batched, merged or reordered before dispatch.
    * If the dispatch loop dies, the next ``submit`` restarts it.
    """

    def __init__(self, enforcer: AutomodEnforcer, max_concurrent_per_guild: Optional[int] = None) -> None:
        self._enforcer = enforcer
        self._limit = max(
            max_concurrent_per_guild if max_concurrent_per_guild is not None
            else app_config.max_concurrent_events_per_guild,
            1,
        )
        self._queue: asyncio.Queue[AutomodEvent] = asyncio.Queue()
        self._semaphores: Dict[GuildID, asyncio.Semaphore] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._loop_task: Optional[asyncio.Task] = None
        self._handlers: Dict[type, Handler] = {
            MessageEvent: enforcer.handle_message,
            ReactionEvent: enforcer.handle_reaction,
            MemberJoinEvent: enforcer.handle_member_join,
            MemberUpdateEvent: enforcer.handle_member_update,
        }

    # ------------------------------------------------------
    # Public API
    # ------------------------------------------------------

    def start(self) -> None:
        """Start (or restart) the dispatch loop."""
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self._dispatch_loop(), name="automod-dispatcher")
            logger.debug("[DISPATCHER] Dispatch loop started")

    async def submit(self, event: AutomodEvent) -> None:
        """Queue an event for enforcement."""
        if type(event) not in self._handlers:
            logger.warning("[DISPATCHER] Ignoring unsupported event type %s", type(event).__name__)
            return
        self.start()
        await self._queue.put(event)

    @property
    def pending(self) -> int:
        """Events queued or being enforced."""
        return self._queue.qsize() + len(self._tasks)

    async def drain(self) -> None:
        """Wait until every submitted event has been enforced."""
        await self._queue.join()
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel the dispatch loop and any in-flight enforcement."""
        if self._loop_task is not None and not self._loop_task.done():
            self._loop_task.cancel()
        tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()

        pending = tasks + ([self._loop_task] if self._loop_task is not None else [])
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        self._tasks.clear()
        self._loop_task = None
        logger.info("[DISPATCHER] Dispatcher shut down")

    # -------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------

    def _semaphore_for(self, guild_id: GuildID) -> asyncio.Semaphore:
        if guild_id not in self._semaphores:
            self._semaphores[guild_id] = asyncio.Semaphore(self._limit)
        return self._semaphores[guild_id]

    async def _dispatch_loop(self) -> None:
        while True:
            try:
                event = await self._queue.get()
            except asyncio.CancelledError:
                logger.debug("[DISPATCHER] Dispatch loop cancelled")
                return

            try:
                task = asyncio.create_task(self._enforce(event))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
            except Exception:
                logger.exception("[DISPATCHER] Failed to schedule %s", type(event).__name__)
            finally:
                self._queue.task_done()

    async def _enforce(self, event: AutomodEvent) -> Optional[EnforcementReport]:
        guild_id = event_guild_id(event)
        handler = self._handlers[type(event)]

        async with self._semaphore_for(guild_id):
            try:
                return await handler(event)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception(
                    "[DISPATCHER] Enforcer raised for %s in guild %s", type(event).__name__, guild_id
                )
                return None
