"""Tests for the sync coordinator: refresh, publishing, deletes and ordering."""

import threading
import time
from unittest.mock import MagicMock

import pytest

from record_desktop.actions import ActionResult
from record_desktop.coordinator import SyncCoordinator
from record_desktop.errors import ListingError
from record_desktop.events import CopyToClipboard, DeleteFile, OpenFile, Upload
from record_desktop.lister import FileRecord, list_files

from tests.conftest import inline_spawn, make_files


def names(files):
    return [f.filename for f in files]


class TestRefresh:
    def test_refresh_publishes_newest_first(self, coordinator, received):
        coordinator.refresh()
        coordinator.run_pending()

        assert names(coordinator.snapshot) == ["a.png", "b.png", "c.png"]
        assert len(received) == 1
        assert received[0].sequence == 1
        assert names(received[0].files) == ["a.png", "b.png", "c.png"]

    def test_refresh_twice_is_idempotent(self, coordinator, received):
        coordinator.refresh()
        coordinator.run_pending()
        first = coordinator.snapshot

        coordinator.refresh()
        coordinator.run_pending()

        assert coordinator.snapshot == first
        # No disk change, no second publication
        assert len(received) == 1

    def test_new_file_is_picked_up_on_external_change(self, coordinator, received, capture_dir):
        coordinator.refresh()
        coordinator.run_pending()

        make_files(capture_dir, ["new.png"], start=time.time() + 60)
        coordinator.on_external_change()
        coordinator.run_pending()

        assert names(coordinator.snapshot)[0] == "new.png"
        assert [m.sequence for m in received] == [1, 2]

    def test_listing_failure_keeps_list_and_notifies(self, coordinator, received, config, notifier, tmp_path):
        coordinator.refresh()
        coordinator.run_pending()
        before = coordinator.snapshot

        config.folder = str(tmp_path / "does-not-exist")
        coordinator.refresh()
        coordinator.run_pending()

        assert coordinator.snapshot == before
        assert len(received) == 1
        notifier.notify.assert_called_once()
        args = notifier.notify.call_args.args
        assert isinstance(args[1], ListingError)

    def test_unexpected_lister_error_is_reported_as_listing_error(self, config, actions, notifier):
        def broken(folder):
            raise RuntimeError("boom")

        coord = SyncCoordinator(config, actions, notifier, lister=broken, spawn=inline_spawn)
        coord.refresh()
        coord.run_pending()

        assert coord.snapshot == ()
        err = notifier.notify.call_args.args[1]
        assert isinstance(err, ListingError)
        assert "boom" in str(err)


class TestStaleListings:
    def test_older_listing_completing_last_is_dropped(self, config, actions, notifier):
        pending = []
        coord = SyncCoordinator(
            config,
            actions,
            notifier,
            spawn=lambda fn, name: pending.append(fn),
        )
        received = []
        coord.updates.subscribe(received.append)

        coord.refresh()
        coord.refresh()
        coord.run_pending()
        assert len(pending) == 2

        # Newer listing (#2) sees only a.png; older (#1) sees all three
        older, newer = pending
        real_lister = coord._lister
        coord._lister = lambda folder: real_lister(folder)[:1]
        newer()
        coord._lister = real_lister
        older()
        coord.run_pending()

        assert names(coord.snapshot) == ["a.png"]
        assert coord.state.applied_sequence == 2
        assert len(received) == 1

    def test_folder_change_triggers_refresh(self, coordinator, received, config, tmp_path):
        coordinator.start()
        try:
            other = tmp_path / "other"
            make_files(other, ["x.png"])
            done = threading.Event()
            coordinator.updates.subscribe(lambda m: done.set())

            config.folder = str(other)

            assert done.wait(5)
            assert names(coordinator.snapshot) == ["x.png"]
        finally:
            coordinator.stop()
        assert not coordinator.is_running


class TestDelete:
    def test_scenario_delete_middle_file(self, coordinator, received, capture_dir):
        coordinator.refresh()
        coordinator.run_pending()
        assert names(coordinator.snapshot) == ["a.png", "b.png", "c.png"]

        b = str(capture_dir / "b.png")
        coordinator.send(DeleteFile(b))
        coordinator.run_pending()

        # Optimistic snapshot went out before the reconciling listing
        assert names(received[1].files) == ["a.png", "c.png"]
        assert not (capture_dir / "b.png").exists()
        assert names(coordinator.snapshot) == ["a.png", "c.png"]

        coordinator.refresh()
        coordinator.run_pending()
        assert names(coordinator.snapshot) == ["a.png", "c.png"]
        assert len(received) == 2

    def test_failed_delete_is_restored_on_next_listing(self, config, notifier, capture_dir):
        actions = MagicMock(name="actions")
        actions.delete.side_effect = lambda url, on_done: on_done(
            ActionResult("delete", url, success=False, error="Permission denied")
        )
        coord = SyncCoordinator(config, actions, notifier, spawn=inline_spawn)
        received = []
        coord.updates.subscribe(received.append)

        coord.refresh()
        coord.run_pending()

        b = str(capture_dir / "b.png")
        coord.send(DeleteFile(b))
        coord.run_pending()

        assert names(received[1].files) == ["a.png", "c.png"]
        assert names(coord.snapshot) == ["a.png", "b.png", "c.png"]
        assert names(received[-1].files) == ["a.png", "b.png", "c.png"]
        message = notifier.notify.call_args.args[0]
        assert "Failed to delete" in message

    def test_pending_delete_hidden_from_interleaved_listing(self, config, notifier, capture_dir):
        finish = []
        actions = MagicMock(name="actions")
        actions.delete.side_effect = lambda url, on_done: finish.append(on_done)
        coord = SyncCoordinator(config, actions, notifier, spawn=inline_spawn)

        coord.refresh()
        coord.run_pending()
        b = str(capture_dir / "b.png")
        coord.send(DeleteFile(b))
        coord.refresh()  # lands while the delete is still running
        coord.run_pending()

        assert names(coord.snapshot) == ["a.png", "c.png"]

        (capture_dir / "b.png").unlink()
        finish[0](ActionResult("delete", b, success=True))
        coord.run_pending()
        assert names(coord.snapshot) == ["a.png", "c.png"]
        assert coord.state.pending_deletes == set()

    def test_listing_older_than_finished_delete_cannot_restore_file(
        self, config, actions, notifier, capture_dir
    ):
        pending = []
        coord = SyncCoordinator(
            config, actions, notifier, spawn=lambda fn, name: pending.append(fn)
        )
        received = []
        coord.updates.subscribe(received.append)

        coord.refresh()
        coord.run_pending()
        pending.pop(0)()
        coord.run_pending()
        before = coord.snapshot
        assert names(before) == ["a.png", "b.png", "c.png"]

        # Listing #2 starts while b.png is still on disk
        coord.refresh()
        coord.run_pending()
        b = str(capture_dir / "b.png")
        coord.send(DeleteFile(b))
        coord.run_pending()
        assert not (capture_dir / "b.png").exists()
        assert coord.state.issued_sequence == 3

        # ...and completes after the delete, with its outdated view
        stale_listing, fresh_listing = pending
        real_lister = coord._lister
        coord._lister = lambda folder: before
        stale_listing()
        coord._lister = real_lister
        coord.run_pending()

        assert "b.png" not in names(coord.snapshot)
        assert all("b.png" not in names(m.files) for m in received[1:])
        assert coord.state.applied_sequence == 2

        fresh_listing()
        coord.run_pending()
        assert names(coord.snapshot) == ["a.png", "c.png"]
        assert coord.state.deleted == {}

    def test_recreated_file_shows_up_again(self, coordinator, capture_dir):
        coordinator.refresh()
        coordinator.run_pending()
        coordinator.send(DeleteFile(str(capture_dir / "b.png")))
        coordinator.run_pending()
        assert coordinator.state.deleted == {}

        make_files(capture_dir, ["b.png"], start=time.time() + 60)
        coordinator.refresh()
        coordinator.run_pending()

        assert names(coordinator.snapshot) == ["b.png", "a.png", "c.png"]

    def test_convergence_after_many_deletes(self, tmp_path, config, coordinator):
        folder = tmp_path / "many"
        paths = make_files(folder, [f"shot{i:02d}.png" for i in range(8)])
        config.folder = str(folder)
        coordinator.refresh()
        coordinator.run_pending()

        for path in paths[1::2]:
            coordinator.send(DeleteFile(str(path)))
        coordinator.run_pending()
        coordinator.refresh()
        coordinator.run_pending()

        assert coordinator.snapshot == list_files(folder)
        assert names(coordinator.snapshot) == ["shot00.png", "shot02.png", "shot04.png", "shot06.png"]


class TestOtherActions:
    @pytest.fixture
    def mock_actions(self):
        return MagicMock(name="actions")

    @pytest.fixture
    def coord(self, config, mock_actions, notifier):
        return SyncCoordinator(config, mock_actions, notifier, spawn=inline_spawn)

    def test_commands_dispatch_to_actions(self, coord, mock_actions):
        coord.send(OpenFile("/x/a.png"))
        coord.send(CopyToClipboard("/x/b.png"))
        coord.send(Upload("/x/c.png"))
        coord.run_pending()

        mock_actions.open.assert_called_once_with("/x/a.png", on_done=coord.report_result)
        mock_actions.copy_to_clipboard.assert_called_once_with("/x/b.png", on_done=coord.report_result)
        mock_actions.upload.assert_called_once_with("/x/c.png", on_done=coord.report_result)

    def test_failed_action_notifies_and_does_not_block(self, coord, mock_actions, notifier):
        mock_actions.open.side_effect = lambda url, on_done: on_done(
            ActionResult("open", url, success=False, error="no viewer")
        )
        coord.send(OpenFile("/x/a.png"))
        coord.send(CopyToClipboard("/x/b.png"))
        coord.run_pending()

        notifier.notify.assert_called_once_with("Could not open /x/a.png: no viewer")
        mock_actions.copy_to_clipboard.assert_called_once()

    def test_upload_link_is_announced(self, coord, notifier):
        coord.report_result(
            ActionResult("upload", "/x/a.png", success=True, detail="https://i.imgur.com/abc.png")
        )
        notifier.notify.assert_called_once_with(
            "Link copied to clipboard: https://i.imgur.com/abc.png"
        )

    def test_handler_exception_is_contained(self, coord, mock_actions, notifier):
        mock_actions.open.side_effect = RuntimeError("kaboom")
        coord.send(OpenFile("/x/a.png"))
        coord.send(CopyToClipboard("/x/b.png"))
        coord.run_pending()

        assert notifier.notify.call_args_list[0].args[0] == "Internal error:"
        mock_actions.copy_to_clipboard.assert_called_once()


def test_snapshots_reach_every_consumer_in_order(coordinator, capture_dir):
    tray, gallery = [], []
    coordinator.updates.subscribe(tray.append)
    coordinator.updates.subscribe(gallery.append)

    coordinator.refresh()
    coordinator.run_pending()
    coordinator.send(DeleteFile(str(capture_dir / "c.png")))
    coordinator.run_pending()

    assert [m.sequence for m in tray] == [m.sequence for m in gallery] == [1, 2]
    assert tray[-1].files == gallery[-1].files
    assert all(isinstance(f, FileRecord) for f in tray[-1].files)
