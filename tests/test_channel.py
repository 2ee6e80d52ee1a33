"""Tests for the producer/consumer channel."""

import threading
import time

import pytest

from odjax.errors import ChannelError
from odjax.pipeline import Channel, MessageKind, start_producer

_JOIN_TIMEOUT = 5.0


def _produce(n):
    def work(channel):
        for k in range(n):
            if not channel.send(k):
                return
    return work


class TestUnboundedChannel:
    def test_send_does_not_block(self):
        channel = Channel.unbounded("test")
        assert not channel.lock_step
        assert all(channel.send(k) for k in range(10))
        channel.close()
        assert list(channel.receive()) == list(range(10))

    def test_iteration_ends_on_close(self):
        channel = Channel.unbounded()
        thread = start_producer("producer", _produce(25), channel)
        assert list(channel) == list(range(25))
        thread.join(_JOIN_TIMEOUT)
        assert not thread.is_alive()

    def test_empty_stream(self):
        channel = Channel.unbounded()
        start_producer("producer", _produce(0), channel).join(_JOIN_TIMEOUT)
        assert list(channel) == []

    def test_producer_failure_is_forwarded(self):
        def work(channel):
            channel.send("first")
            raise ValueError("boom")

        channel = Channel.unbounded("truth")
        start_producer("producer", work, channel)
        received = []
        with pytest.raises(ChannelError, match="truth") as excinfo:
            for sample in channel:
                received.append(sample)
        assert received == ["first"]
        assert isinstance(excinfo.value.__cause__, ValueError)

    def test_message_kinds(self):
        assert {k.value for k in MessageKind} == {"sample", "closed", "failed"}


class TestLockStepChannel:
    def test_send_waits_for_consumer(self):
        events = []
        lock = threading.Lock()

        def work(channel):
            for k in range(3):
                channel.send(k)
                with lock:
                    events.append(("sent", k))

        channel = Channel.lock_stepped("estimation")
        thread = start_producer("producer", work, channel)
        for k in channel:
            time.sleep(0.02)
            with lock:
                events.append(("done", k))
        thread.join(_JOIN_TIMEOUT)

        for k in range(3):
            assert events.index(("done", k)) < events.index(("sent", k))

    def test_consumer_changes_are_seen_before_next_send(self):
        """State touched by the consumer is in place when send returns."""
        shared = {"value": 0}
        seen = []

        def work(channel):
            for _ in range(4):
                channel.send(shared["value"])
                seen.append(shared["value"])

        channel = Channel.lock_stepped()
        thread = start_producer("producer", work, channel)
        for sample in channel:
            shared["value"] = sample + 1
        thread.join(_JOIN_TIMEOUT)
        assert seen == [1, 2, 3, 4]

    def test_closing_iterator_cancels_producer(self):
        results = []

        def work(channel):
            for k in range(100):
                ok = channel.send(k)
                results.append(ok)
                if not ok:
                    return

        channel = Channel.lock_stepped()
        thread = start_producer("producer", work, channel)
        samples = channel.receive()
        assert next(samples) == 0
        assert next(samples) == 1
        samples.close()

        thread.join(_JOIN_TIMEOUT)
        assert not thread.is_alive()
        assert channel.cancelled
        assert results[-1] is False
        assert len(results) <= 3

    def test_cancel_without_consuming_releases_producer(self):
        channel = Channel.lock_stepped()
        thread = start_producer("producer", _produce(10), channel)
        time.sleep(0.05)
        channel.cancel()
        thread.join(_JOIN_TIMEOUT)
        assert not thread.is_alive()

    def test_send_after_cancel(self):
        channel = Channel.lock_stepped()
        channel.cancel()
        assert channel.send(1) is False
