"""Real-time registration updates via SSE."""

import asyncio
import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, Optional, Set
from uuid import uuid4

from .errors import TransportClosed

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 3.0  # seconds

Snapshot = Dict[str, Any]
FetchSnapshot = Callable[[], Awaitable[Snapshot]]
SendFrame = Callable[[str], Awaitable[None]]


def encode_frame(payload: Snapshot) -> str:
    """Encode a payload as a single SSE data frame."""
    return f"data: {json.dumps(payload)}\n\n"


class SSEChannel:
    """
    One-way channel between a broadcast session and a streaming response.

    Frames are buffered in a queue until the response drains them. A client
    that lets ``maxsize`` frames pile up is treated as gone.
    """

    _CLOSED = object()

    def __init__(self, maxsize: int = 16):
        self._maxsize = maxsize
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, frame: str) -> None:
        if self._closed:
            raise TransportClosed("channel is closed")
        if self._queue.qsize() >= self._maxsize:
            raise TransportClosed("client stopped reading the stream")
        self._queue.put_nowait(frame)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(self._CLOSED)

    async def frames(self) -> AsyncGenerator[str, None]:
        """Yield frames in order until the channel is closed."""
        while True:
            frame = await self._queue.get()
            if frame is self._CLOSED:
                return
            yield frame


class SessionState(str, enum.Enum):
    STARTING = "starting"
    STREAMING = "streaming"
    CLOSED = "closed"


class BroadcastSession:
    """
    Pushes a full registration snapshot to one client on a fixed interval.

    The session starts in STARTING, sends one snapshot immediately, and only
    then arms its polling task and moves to STREAMING. Any failed fetch or
    write closes it for good. ``cancel`` may be called at any time and any
    number of times; the close hook runs exactly once.
    """

    def __init__(
        self,
        fetch: FetchSnapshot,
        send: SendFrame,
        interval: float = DEFAULT_INTERVAL,
        on_close: Optional[Callable[["BroadcastSession"], None]] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or uuid4().hex[:8]
        self.interval = interval
        self.state = SessionState.STARTING
        self.frames_sent = 0
        self.close_reason: Optional[str] = None
        self._fetch = fetch
        self._send = send
        self._on_close = on_close
        self._task: Optional[asyncio.Task] = None

    @property
    def timer_armed(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> bool:
        """Send the first snapshot and arm the polling task. Returns False if the session closed instead."""
        if self.state is not SessionState.STARTING:
            return self.state is SessionState.STREAMING

        logger.info(f"SSE session opened: session_id={self.session_id}")
        try:
            pushed = await self._push()
        except asyncio.CancelledError:
            # the request went away while the first snapshot was loading
            self._close("cancelled")
            raise
        if not pushed:
            return False
        # cancelled while the first snapshot was in flight
        if self.state is not SessionState.STARTING:
            return False

        self.state = SessionState.STREAMING
        self._task = asyncio.create_task(self._run(), name=f"sse-session-{self.session_id}")
        return True

    def cancel(self, reason: str = "cancelled") -> None:
        """Close the session from outside, e.g. on client disconnect."""
        self._close(reason)

    async def _run(self) -> None:
        # sleep -> fetch -> write, so two ticks of one session never overlap
        while self.state is SessionState.STREAMING:
            await asyncio.sleep(self.interval)
            if self.state is not SessionState.STREAMING:
                break
            if not await self._push():
                break

    async def _push(self) -> bool:
        try:
            snapshot = await self._fetch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"SSE snapshot fetch failed: session_id={self.session_id}, "
                f"error={type(e).__name__}: {e}"
            )
            self._close("snapshot fetch failed")
            return False

        if self.state is SessionState.CLOSED:
            return False

        try:
            await self._send(encode_frame(snapshot))
        except TransportClosed:
            self._close("client disconnected")
            return False
        except Exception as e:
            logger.warning(
                f"SSE write failed: session_id={self.session_id}, "
                f"error={type(e).__name__}: {e}"
            )
            self._close("write failed")
            return False

        self.frames_sent += 1
        return True

    def _close(self, reason: str) -> None:
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        self.close_reason = reason

        task, self._task = self._task, None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

        logger.info(
            f"SSE session closed: session_id={self.session_id}, "
            f"reason={reason}, frames_sent={self.frames_sent}"
        )
        if self._on_close is not None:
            self._on_close(self)


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


@dataclass
class SessionRegistry:
    """Keeps track of open broadcast sessions."""

    sessions: Set[BroadcastSession] = field(default_factory=set)

    def subscribe(self, session: BroadcastSession) -> None:
        self.sessions.add(session)

    def unsubscribe(self, session: BroadcastSession) -> None:
        self.sessions.discard(session)

    def close_all(self, reason: str = "server shutdown") -> int:
        """Cancel every open session. Returns how many were closed."""
        open_sessions = list(self.sessions)
        for session in open_sessions:
            session.cancel(reason)
        self.sessions.clear()
        return len(open_sessions)

    def __len__(self) -> int:
        return len(self.sessions)
