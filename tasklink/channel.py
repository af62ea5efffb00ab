"""Async request/response channel between the page side and the service.

The page side never talks to Todoist directly; it sends small dict messages
(see ``tasklink.service``) and awaits a dict reply. Transport failures surface
as ``ChannelError`` / ``ChannelTimeout`` so callers can degrade uniformly.
"""

from __future__ import annotations

import abc
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

from tasklink.errors import ChannelError, ChannelTimeout
from tasklink.utils.logger import log_debug

Message = Dict[str, Any]
Handler = Callable[[Message], Awaitable[Optional[Message]]]


class Channel(abc.ABC):
    """One request, one response."""

    @abc.abstractmethod
    async def request(self, message: Message) -> Message:
        """Send ``message`` and return the reply.

        Raises:
            ChannelTimeout: no reply within the channel timeout
            ChannelError: the transport failed or produced no reply
        """


class LocalChannel(Channel):
    """In-process channel that calls a handler coroutine directly.

    Used when both sides share an event loop (CLI, tests). The handler is
    usually ``TaskLinkService.handle``.
    """

    def __init__(self, handler: Handler, timeout: Optional[float] = 30.0):
        self._handler = handler
        self.timeout = timeout
        self.request_count = 0

    async def request(self, message: Message) -> Message:
        self.request_count += 1
        message_type = message.get("type", "?")
        log_debug("Channel request", type=message_type)

        try:
            response = await asyncio.wait_for(self._handler(message), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ChannelTimeout(f"No response to {message_type} within {self.timeout}s") from e
        except ChannelError:
            raise
        except Exception as e:
            raise ChannelError(f"{message_type} request failed: {e}") from e

        if not isinstance(response, dict):
            raise ChannelError("No response from background service.")
        return response
