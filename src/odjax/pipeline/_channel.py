"""Producer/consumer channel between a propagation thread and its consumer.

Every message on the underlying :class:`queue.Queue` is a tagged
``(kind, payload)`` pair.  Iteration ends only on an explicit ``CLOSED``
message; a ``FAILED`` message re-raises the producer's exception on the
consumer side as :class:`~odjax.errors.ChannelError`.

A lock-step channel makes :meth:`Channel.send` wait until the consumer
has finished with the sample, i.e. until the consumer asks for the next
one.  A consumer that stops early closes its iterator, which cancels the
channel; the producer sees ``False`` from its next ``send`` and stops.
"""

from __future__ import annotations

import enum
import logging
import queue
import threading
from collections.abc import Callable, Iterator
from typing import Any

from odjax.errors import ChannelError

logger = logging.getLogger(__name__)


class MessageKind(enum.Enum):
    SAMPLE = "sample"
    CLOSED = "closed"
    FAILED = "failed"


class Channel:
    """Single-producer, single-consumer sample channel.

    Args:
        lock_step: If ``True``, ``send`` blocks until the consumer has
            processed the sample.
        name: Used in log and error messages.
    """

    def __init__(self, lock_step: bool = False, name: str = "channel") -> None:
        self.lock_step = lock_step
        self.name = name
        self._queue: queue.Queue[tuple[MessageKind, Any]] = queue.Queue()
        self._cancelled = threading.Event()
        self._send_lock = threading.Lock()

    @classmethod
    def unbounded(cls, name: str = "channel") -> Channel:
        """Free-running channel; the producer never waits."""
        return cls(lock_step=False, name=name)

    @classmethod
    def lock_stepped(cls, name: str = "channel") -> Channel:
        """Channel whose producer waits for every sample to be processed."""
        return cls(lock_step=True, name=name)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    # Producer side

    def send(self, sample: Any) -> bool:
        """Publish one sample.

        Returns:
            bool: ``False`` if the consumer has cancelled the channel, in
            which case the producer should stop.
        """
        with self._send_lock:
            if self._cancelled.is_set():
                return False
            self._queue.put((MessageKind.SAMPLE, sample))
        if self.lock_step:
            self._queue.join()
        return not self._cancelled.is_set()

    def close(self) -> None:
        """Signal normal completion."""
        self._queue.put((MessageKind.CLOSED, None))

    def fail(self, exc: BaseException) -> None:
        """Forward a producer exception to the consumer."""
        self._queue.put((MessageKind.FAILED, exc))

    # Consumer side

    def cancel(self) -> None:
        """Stop the producer at its next ``send``.

        Pending messages are discarded, releasing a producer that waits
        on a lock-step send.
        """
        with self._send_lock:
            if not self._cancelled.is_set():
                logger.debug("Channel %s cancelled by consumer", self.name)
            self._cancelled.set()
            while True:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    break
                self._queue.task_done()

    def receive(self) -> Iterator[Any]:
        """Iterate over samples until the producer closes the channel.

        Closing the returned generator before ``CLOSED`` cancels the
        channel.

        Raises:
            ChannelError: If the producer failed.
        """
        while True:
            kind, payload = self._queue.get()
            try:
                if kind is MessageKind.CLOSED:
                    return
                if kind is MessageKind.FAILED:
                    raise ChannelError(
                        f"Producer on {self.name} failed: {payload!r}"
                    ) from payload
                yield payload
            except GeneratorExit:
                self.cancel()
                raise
            finally:
                self._queue.task_done()

    def __iter__(self) -> Iterator[Any]:
        return self.receive()


def start_producer(
    name: str,
    work: Callable[[Channel], None],
    channel: Channel,
) -> threading.Thread:
    """Run ``work(channel)`` on a daemon thread.

    The channel is closed when *work* returns and failed with the
    exception when it raises.
    """

    def _run() -> None:
        try:
            work(channel)
        except Exception as exc:
            logger.debug("Producer %s raised %r", name, exc)
            channel.fail(exc)
        else:
            channel.close()

    thread = threading.Thread(target=_run, name=name, daemon=True)
    thread.start()
    return thread
