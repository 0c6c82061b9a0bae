"""Session management for the streamable HTTP transport.

A session is created by an ``initialize`` request that carries no session id
and lives until it is terminated by DELETE, idle expiry or server shutdown.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from mcp_notes_server.protocol.jsonrpc import format_notification
from mcp_notes_server.protocol.lifecycle import LifecycleManager

logger = logging.getLogger(__name__)

# Outbound messages buffered per session while no GET stream is attached
STREAM_BUFFER_SIZE = 100


class SessionState(Enum):
    """Transport state of a session."""

    OPEN = "open"
    CLOSED = "closed"


class SessionStream:
    """Duplex-style message channel for server-to-client messages.

    ``send`` queues one serialized JSON-RPC message, ``receive`` returns the
    next one (None once the stream is closed and drained), ``close`` ends
    the stream. At most one consumer may be attached at a time.
    """

    def __init__(self, buffer_size: int = STREAM_BUFFER_SIZE) -> None:
        send, receive = anyio.create_memory_object_stream(max_buffer_size=buffer_size)
        self._send: MemoryObjectSendStream[str] = send
        self._receive: MemoryObjectReceiveStream[str] = receive
        self._attached = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def attached(self) -> bool:
        return self._attached

    def attach(self) -> bool:
        """Claim the stream for a consumer. False if one is already attached."""
        if self._attached or self._closed:
            return False
        self._attached = True
        return True

    def detach(self) -> None:
        """Release the consumer claim; buffered messages stay queued."""
        self._attached = False

    def send(self, message: str) -> bool:
        """Queue one message without blocking.

        Returns:
            False if the stream is closed or its buffer is full.
        """
        if self._closed:
            return False
        try:
            self._send.send_nowait(message)
        except anyio.WouldBlock:
            logger.warning("Session stream buffer full, dropping message")
            return False
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            return False
        return True

    async def receive(self) -> str | None:
        """Wait for the next message, or None once closed and drained."""
        try:
            return await self._receive.receive()
        except (anyio.EndOfStream, anyio.ClosedResourceError):
            return None

    def close(self) -> None:
        """End the stream; a waiting consumer wakes up and stops."""
        self._closed = True
        self._send.close()
        self._receive.close()

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            message = await self.receive()
            if message is None:
                return
            yield message


@dataclass
class Session:
    """State held for one client session."""

    session_id: str
    lifecycle: LifecycleManager
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    state: SessionState = SessionState.OPEN
    last_seen: float = field(default_factory=time.monotonic)
    stream: SessionStream = field(default_factory=SessionStream)
    # Serialises dispatch and termination for this session only
    lock: anyio.Lock = field(default_factory=anyio.Lock)

    @property
    def is_open(self) -> bool:
        return self.state is SessionState.OPEN

    def touch(self) -> None:
        """Record activity for idle-expiry purposes."""
        self.last_seen = time.monotonic()

    def notify(self, method: str, params: dict[str, Any] | None = None) -> bool:
        """Queue a JSON-RPC notification for the client's GET stream."""
        return self.stream.send(format_notification(method, params))

    def close(self) -> None:
        self.state = SessionState.CLOSED
        self.stream.close()


class SessionManager:
    """Owns the mapping from session id to Session.

    The map is guarded by a lock held only for dictionary operations, so
    work on one session never waits for work on another. Operations on the
    same session are serialised by that session's own lock.
    """

    def __init__(
        self,
        new_lifecycle: Callable[[], LifecycleManager] = LifecycleManager,
        idle_timeout: float | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            new_lifecycle: Factory for the protocol state of new sessions.
            idle_timeout: Seconds of inactivity after which a session may be
                reaped; None disables expiry.
        """
        self._new_lifecycle = new_lifecycle
        self._idle_timeout = idle_timeout
        self._sessions: dict[str, Session] = {}
        # Every id handed out so far, so none is ever reused
        self._issued: set[str] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    @property
    def idle_timeout(self) -> float | None:
        return self._idle_timeout

    def create_session(self) -> Session:
        """Create and register a new open session with a fresh id."""
        with self._lock:
            session_id = str(uuid.uuid4())
            while session_id in self._issued:
                session_id = str(uuid.uuid4())
            session = Session(session_id=session_id, lifecycle=self._new_lifecycle())
            self._issued.add(session_id)
            self._sessions[session_id] = session
        logger.info("Session created: %s", session_id)
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Look up a session. Returns None for unknown or terminated ids."""
        with self._lock:
            return self._sessions.get(session_id)

    async def terminate_session(self, session_id: str) -> bool:
        """Terminate a session.

        Waits for any in-flight dispatch on the same session, then closes
        its stream and removes it.

        Returns:
            True if the session existed and was terminated, False otherwise.
        """
        session = self.get_session(session_id)
        if session is None:
            return False

        async with session.lock:
            with self._lock:
                if self._sessions.get(session_id) is not session:
                    return False
                del self._sessions[session_id]
            session.close()

        logger.info("Session terminated: %s", session_id)
        return True

    async def reap_idle_sessions(self) -> int:
        """Terminate sessions idle for longer than the idle timeout.

        Returns:
            Number of sessions terminated.
        """
        if self._idle_timeout is None:
            return 0

        cutoff = time.monotonic() - self._idle_timeout
        with self._lock:
            idle = [
                s.session_id
                for s in self._sessions.values()
                if s.last_seen < cutoff and not s.stream.attached and not s.lock.locked()
            ]

        reaped = 0
        for session_id in idle:
            if await self.terminate_session(session_id):
                reaped += 1
        if reaped:
            logger.info("Reaped %d idle session(s)", reaped)
        return reaped

    async def run_reaper(self, interval: float) -> None:
        """Reap idle sessions every ``interval`` seconds until cancelled."""
        while True:
            await anyio.sleep(interval)
            await self.reap_idle_sessions()

    async def shutdown(self) -> None:
        """Terminate every live session."""
        with self._lock:
            session_ids = list(self._sessions)
        for session_id in session_ids:
            await self.terminate_session(session_id)
        logger.info("Session manager shut down (%d session(s) closed)", len(session_ids))
