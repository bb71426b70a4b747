"""Link session supervisor.

The sound bar accepts a single BLE connection at a time, so this class is
the only owner of the link:
- All writes go through one FIFO queue drained by one worker task
- Concurrent connection requests share a single in-flight attempt
- A failed write is retried once after a disconnect + reconnect
- The link is released after a period with no writes or notifications,
  so a competing client (e.g. the phone app) can connect
- Every successful (re)connect invokes the reconnect callback so the owner
  can refresh state that may have changed while we were away
"""

import asyncio
import logging
from asyncio import Future, Queue, Task, TimerHandle
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pystealthtech.const import DEFAULT_IDLE_TIMEOUT
from pystealthtech.exceptions import CommunicationError
from pystealthtech.protocol import Command
from pystealthtech.transport import NotificationHandler, Transport


@dataclass
class QueuedCommand:
    """A command waiting in the queue and the future its caller awaits."""
    command: Command
    future: Future
    sequence_number: int


class ConnectionManager:

    def __init__(
        self,
        transport: Transport,
        address: str = "",
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT,
    ):
        """Initialize the supervisor.

        Args:
            transport: Link capability used for connect/write/notify
            address: Fixed device address, or "" to auto-discover on first connect
            idle_timeout: Seconds of inactivity before the link is released (<= 0 keeps it open)
        """
        self._logger = logging.getLogger(__name__)
        self._transport = transport
        self._resolved_address = address
        self._idle_timeout = idle_timeout

        self._connected = False
        self._notification_handler: Optional[NotificationHandler] = None
        self._reconnect_callback: Optional[Callable[[], None]] = None
        self._disconnect_callback: Optional[Callable[[], None]] = None

        self._command_queue: Queue = Queue()
        self._command_sequence_number: int = 0
        self._command_worker_task: Optional[Task[Any]] = None
        self._connect_task: Optional[Task[Any]] = None
        self._idle_timer: Optional[TimerHandle] = None
        self._idle_disconnect_task: Optional[Task[Any]] = None

    # ========== Public API ==========

    @property
    def resolved_address(self) -> str:
        """Configured address, or the address pinned by the first auto-discovery."""
        return self._resolved_address

    @property
    def is_connected(self) -> bool:
        return self._connected and self._transport.is_connected

    def set_notification_handler(self, handler: NotificationHandler):
        self._notification_handler = handler

    def on_reconnect(self, callback: Callable[[], None]):
        self._reconnect_callback = callback

    def on_disconnect(self, callback: Callable[[], None]):
        """Called whenever the supervisor releases or drops an established link."""
        self._disconnect_callback = callback

    async def enqueue(self, command: Command):
        """Queue a command and wait until it has been written.

        Raises:
            CommunicationError: the write failed, was retried once, and failed again
        """
        loop = asyncio.get_running_loop()
        self._command_sequence_number += 1
        item = QueuedCommand(command, loop.create_future(), self._command_sequence_number)
        self._logger.debug(f"QUEUE: Adding command #{item.sequence_number}: {command}")
        self._command_queue.put_nowait(item)
        self._ensure_worker()
        await item.future

    async def ensure_connected(self):
        """Connect unless already connected. Concurrent callers share one attempt."""
        if self.is_connected:
            self._reset_idle_timer()
            return

        if self._connected:
            # The device dropped the link on its own
            self._logger.info(f"Link to {self._resolved_address} was lost")
            self._cancel_idle_timer()
            self._mark_disconnected()

        if self._connect_task is None or self._connect_task.done():
            self._connect_task = asyncio.get_running_loop().create_task(self._do_connect())
        connect_task = self._connect_task
        try:
            await asyncio.shield(connect_task)
        finally:
            if self._connect_task is connect_task and connect_task.done():
                self._connect_task = None

    async def disconnect(self):
        """Release the link. Safe to call when already disconnected."""
        self._cancel_idle_timer()
        self._mark_disconnected()
        await self._transport.disconnect()

    async def close(self):
        """Disconnect, stop the worker and fail anything still queued."""
        self._cancel_idle_timer()
        if self._idle_disconnect_task is not None and not self._idle_disconnect_task.done():
            self._idle_disconnect_task.cancel()
        self._idle_disconnect_task = None
        if self._command_worker_task is not None and not self._command_worker_task.done():
            self._command_worker_task.cancel()
            try:
                await self._command_worker_task
            except asyncio.CancelledError:
                pass
        self._command_worker_task = None
        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
        self._connect_task = None
        while not self._command_queue.empty():
            item = self._command_queue.get_nowait()
            if not item.future.done():
                item.future.set_exception(CommunicationError("Connection closed"))
        await self.disconnect()

    # ========== Connection ==========

    async def _do_connect(self):
        label = self._resolved_address or "auto-discovery"
        self._logger.info(f"Connecting to {label}...")
        try:
            address = await self._transport.connect(self._resolved_address or None)
            if not self._resolved_address and address:
                # Lock to the discovered device for every later reconnect
                self._resolved_address = address
                self._logger.info(f"Auto-discovered device: {address}")
            await self._transport.subscribe_notifications(self._on_notification)
        except Exception:
            # Never keep a half-open link: the device has only one slot
            await self._drop_connection()
            raise
        self._connected = True
        self._reset_idle_timer()
        self._logger.info(f"Connected to {self._resolved_address}")
        if self._reconnect_callback is not None:
            try:
                self._reconnect_callback()
            except Exception as e:
                self._logger.error(f"Exception in reconnect callback: {e}", exc_info=True)

    def _on_notification(self, data: bytes):
        self._reset_idle_timer()
        if self._notification_handler is not None:
            self._notification_handler(data)

    # ========== Queue management ==========

    def _ensure_worker(self):
        # Only one worker may drain the queue
        if self._command_worker_task is None or self._command_worker_task.done():
            self._command_worker_task = asyncio.get_running_loop().create_task(self._command_worker())

    async def _command_worker(self):
        """Worker task that writes queued commands one at a time, in order."""
        while True:
            item: QueuedCommand = await self._command_queue.get()
            try:
                await self._process(item)
            except asyncio.CancelledError:
                if not item.future.done():
                    item.future.set_exception(CommunicationError("Connection closed"))
                raise
            finally:
                self._command_queue.task_done()

    async def _process(self, item: QueuedCommand):
        if item.future.done():
            # Caller was cancelled while waiting; nobody to report to
            return
        self._logger.debug(f"[WORKER] Processing command #{item.sequence_number}: {item.command}")
        try:
            await self._send(item.command)
        except Exception as e:
            self._logger.warning(f"BLE write failed, reconnecting: {e}")
            await self._drop_connection()
            try:
                await self._send(item.command)
            except Exception as retry_error:
                self._logger.warning(f"Command #{item.sequence_number} failed after retry: {retry_error}")
                if not item.future.done():
                    error = CommunicationError(f"Failed to send {item.command}: {retry_error}")
                    error.__cause__ = retry_error
                    item.future.set_exception(error)
                return
        if not item.future.done():
            item.future.set_result(None)

    async def _send(self, command: Command):
        await self.ensure_connected()
        self._logger.debug(f"SEND: {command}")
        await self._transport.write(command.endpoint, command.data)
        self._reset_idle_timer()

    async def _drop_connection(self):
        self._cancel_idle_timer()
        self._mark_disconnected()
        try:
            await self._transport.disconnect()
        except Exception as e:
            self._logger.debug(f"Ignoring error while dropping connection: {e}")

    def _mark_disconnected(self):
        was_connected = self._connected
        self._connected = False
        if was_connected and self._disconnect_callback is not None:
            try:
                self._disconnect_callback()
            except Exception as e:
                self._logger.error(f"Exception in disconnect callback: {e}", exc_info=True)

    # ========== Idle release ==========

    def _reset_idle_timer(self):
        self._cancel_idle_timer()
        if self._idle_timeout <= 0:
            return
        loop = asyncio.get_running_loop()
        self._idle_timer = loop.call_later(self._idle_timeout, self._on_idle_timeout)

    def _cancel_idle_timer(self):
        if self._idle_timer is not None:
            self._idle_timer.cancel()
            self._idle_timer = None

    def _on_idle_timeout(self):
        self._idle_timer = None
        self._logger.info(f"Idle timeout, disconnecting from {self._resolved_address}")
        self._idle_disconnect_task = asyncio.get_running_loop().create_task(self._idle_disconnect())

    async def _idle_disconnect(self):
        if self._idle_timer is not None:
            # Activity re-armed the timer before this task got to run
            self._logger.debug("Idle disconnect skipped, link is active again")
            return
        try:
            await self.disconnect()
        except Exception as e:
            self._logger.warning(f"Error during idle disconnect: {e}")
