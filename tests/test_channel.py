"""Unit tests for the direct channel."""
import threading

import pytest

from file_relay.channel import DirectChannel
from file_relay.errors import ChannelError


class TestDirectChannel:
    """Tests for synchronous point-to-point hand-off."""

    def test_send_without_subscriber_fails(self):
        with pytest.raises(ChannelError):
            DirectChannel().send("msg")

    def test_send_returns_handler_result(self):
        channel = DirectChannel()
        channel.subscribe(lambda msg: msg.upper())
        assert channel.send("hello") == "HELLO"

    def test_handler_runs_on_sender_thread(self):
        """Test that the consumer runs before send() returns, on the same thread."""
        seen = []
        channel = DirectChannel()
        channel.subscribe(lambda msg: seen.append(threading.current_thread()))
        channel.send("x")
        assert seen == [threading.current_thread()]

    def test_handler_errors_propagate(self):
        def boom(msg):
            raise RuntimeError("consumer failed")

        channel = DirectChannel()
        channel.subscribe(boom)
        with pytest.raises(RuntimeError, match="consumer failed"):
            channel.send("x")

    def test_single_subscriber_only(self):
        channel = DirectChannel()
        channel.subscribe(print)
        with pytest.raises(ValueError):
            channel.subscribe(len)
        assert channel.subscriber_count == 1

    def test_unsubscribe(self):
        channel = DirectChannel()
        channel.subscribe(print)
        assert not channel.unsubscribe(len)
        assert channel.unsubscribe(print)
        assert channel.subscriber_count == 0
        with pytest.raises(ChannelError):
            channel.send("x")
