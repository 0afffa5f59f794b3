"""Tests for coordinator messages and the Channel."""

from record_desktop.events import (
    Channel,
    CopyToClipboard,
    DeleteFile,
    FilesChanged,
    OpenFile,
    Refresh,
    Upload,
)


def test_message_names():
    assert OpenFile("/a").name == "OPEN_FILE"
    assert CopyToClipboard("/a").name == "COPY_TO_CLIPBOARD"
    assert DeleteFile("/a").name == "DELETE_FILE"
    assert Upload("/a").name == "UPLOAD"
    assert Refresh().name == "REFRESH"
    assert FilesChanged(1, ()).name == "NEW_FILE"


class TestChannel:
    def test_delivers_in_subscription_order(self):
        channel = Channel("test")
        seen = []
        channel.subscribe(lambda m: seen.append(("first", m)))
        channel.subscribe(lambda m: seen.append(("second", m)))

        channel.send(1)
        channel.send(2)

        assert seen == [("first", 1), ("second", 1), ("first", 2), ("second", 2)]

    def test_unsubscribe_handle(self):
        channel = Channel()
        seen = []
        unsubscribe = channel.subscribe(seen.append)

        unsubscribe()
        unsubscribe()
        channel.send("x")

        assert seen == []
        assert channel.subscriber_count == 0

    def test_raising_subscriber_does_not_stop_delivery(self):
        channel = Channel()
        seen = []

        def broken(message):
            raise ValueError(message)

        channel.subscribe(broken)
        channel.subscribe(seen.append)

        channel.send(FilesChanged(3, ()))

        assert seen == [FilesChanged(3, ())]
