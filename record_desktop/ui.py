"""GUI for record-desktop: Gallery and Settings windows.

Built with wxPython. The gallery is a scrolled, wrapping grid of
thumbnails; which thumbnails are actually loaded is decided by
``gallery.GalleryModel`` so images far off screen are never read.
"""

import logging
import os
from collections.abc import Callable
from typing import TYPE_CHECKING

import wx

from record_desktop.events import (
    CopyToClipboard,
    DeleteFile,
    FilesChanged,
    OpenFile,
    Upload,
)
from record_desktop.gallery import (
    THUMBNAIL_SIZE,
    GalleryModel,
    Rect,
    ScrollTracker,
    load_thumbnail,
)
from record_desktop.lister import FileRecord

if TYPE_CHECKING:
    from record_desktop.app import App

logger = logging.getLogger(__name__)

_TILE_MARGIN = 10


class _CallLaterTimer:
    """Debouncer timer that fires on the wx main thread."""

    def __init__(self, interval: float, function: Callable[[], None]):
        self._ms = max(1, int(interval * 1000))
        self._function = function
        self._call: wx.CallLater | None = None

    def start(self) -> None:
        self._call = wx.CallLater(self._ms, self._function)

    def cancel(self) -> None:
        if self._call is not None and self._call.IsRunning():
            self._call.Stop()
        self._call = None


def _placeholder_bitmap(size: tuple[int, int] = THUMBNAIL_SIZE) -> wx.Bitmap:
    bmp = wx.Bitmap(*size)
    dc = wx.MemoryDC(bmp)
    dc.SetBackground(wx.Brush(wx.Colour(235, 235, 235)))
    dc.Clear()
    dc.SelectObject(wx.NullBitmap)
    return bmp


def _thumbnail_bitmap(url: str) -> wx.Bitmap | None:
    img = load_thumbnail(url)
    if img is None:
        return None
    return wx.Bitmap.FromBufferRGBA(img.width, img.height, img.tobytes())


# ======================================================================
# Gallery window
# ======================================================================


class _Tile:
    """One gallery cell: thumbnail, file name and an action menu button."""

    def __init__(self, parent: wx.Window, window: "GalleryWindow", file: FileRecord):
        self.url = file.url
        self.is_image = file.is_image
        self.loaded = False
        self._window = window

        self.panel = wx.Panel(parent)
        sizer = wx.BoxSizer(wx.VERTICAL)

        self.bitmap = wx.StaticBitmap(self.panel, bitmap=window.placeholder)
        self.bitmap.SetMinSize(THUMBNAIL_SIZE)
        self.bitmap.Bind(wx.EVT_LEFT_DCLICK, lambda e: window.send(OpenFile(self.url)))
        sizer.Add(self.bitmap, flag=wx.ALIGN_CENTER_HORIZONTAL)

        row = wx.BoxSizer(wx.HORIZONTAL)
        label = wx.StaticText(self.panel, label=file.filename)
        label.SetName(file.filename)
        row.Add(label, proportion=1, flag=wx.ALIGN_CENTER_VERTICAL)
        menu_btn = wx.Button(self.panel, label="⚙", size=(32, -1))
        menu_btn.SetName(f"Actions for {file.filename}")
        menu_btn.Bind(wx.EVT_BUTTON, self._on_menu)
        row.Add(menu_btn, flag=wx.LEFT, border=4)
        sizer.Add(row, flag=wx.EXPAND | wx.TOP, border=4)

        self.panel.SetSizer(sizer)

    def set_visible(self, visible: bool) -> None:
        # Recordings keep the placeholder
        if visible and not self.loaded and self.is_image:
            bmp = _thumbnail_bitmap(self.url)
            if bmp is not None:
                self.bitmap.SetBitmap(bmp)
                self.loaded = True
        elif not visible and self.loaded:
            self.bitmap.SetBitmap(self._window.placeholder)
            self.loaded = False

    def _on_menu(self, event: wx.CommandEvent) -> None:
        menu = wx.Menu()
        items = [
            ("Upload to imgur", lambda: self._window.send(Upload(self.url))),
            ("Copy to clipboard", lambda: self._window.send(CopyToClipboard(self.url))),
            ("Open in image viewer", lambda: self._window.send(OpenFile(self.url))),
            ("Delete", lambda: self._window.delete(self.url)),
        ]
        for label, handler in items:
            item = menu.Append(wx.ID_ANY, label)
            self.panel.Bind(wx.EVT_MENU, lambda e, h=handler: h(), item)
        self.panel.PopupMenu(menu)
        menu.Destroy()


class GalleryWindow:
    """Scrollable thumbnail grid of every capture in the folder."""

    def __init__(self, app: "App"):
        """Create the gallery window (hidden until ``show`` is called)."""
        self._app = app
        self._win: wx.Frame | None = None
        self._scrolled: wx.ScrolledWindow | None = None
        self._grid: wx.WrapSizer | None = None
        self._tiles: dict[str, _Tile] = {}
        self._model: GalleryModel | None = None
        self._tracker: ScrollTracker | None = None
        self.placeholder: wx.Bitmap | None = None

    def show(self) -> None:
        """Show or focus the gallery window."""
        if self._win is not None:
            self._win.Raise()
            self._win.SetFocus()
            return
        self._build()

    def toggle(self) -> None:
        """Show the gallery, or close and unload it if it is open."""
        if self._win is not None:
            self._on_close()
        else:
            self._build()

    def send(self, command) -> None:
        self._app.coordinator.send(command)

    def delete(self, url: str) -> None:
        """Remove the tile right away, then ask the coordinator to delete."""
        if self._model is not None:
            self._model.remove(url)
        tile = self._tiles.pop(url, None)
        if tile is not None and self._grid is not None:
            self._grid.Detach(tile.panel)
            tile.panel.Destroy()
            self._relayout()
        self.send(DeleteFile(url))

    def _build(self) -> None:
        self._win = wx.Frame(
            None,
            title="record-desktop — Gallery",
            size=(800, 900),
            style=wx.DEFAULT_FRAME_STYLE,
        )
        self._win.SetMinSize((420, 360))
        self._win.Bind(wx.EVT_CLOSE, self._on_close_event)
        self._win.Bind(wx.EVT_ICONIZE, self._on_iconize)
        self._win.Bind(wx.EVT_CHAR_HOOK, self._on_char_hook)

        self.placeholder = _placeholder_bitmap()

        self._scrolled = wx.ScrolledWindow(self._win, style=wx.VSCROLL)
        self._scrolled.SetScrollRate(0, 20)
        self._grid = wx.WrapSizer(wx.HORIZONTAL)
        self._scrolled.SetSizer(self._grid)

        self._scrolled.Bind(wx.EVT_SCROLLWIN, self._on_scroll)
        self._scrolled.Bind(wx.EVT_MOUSEWHEEL, self._on_scroll)
        self._scrolled.Bind(wx.EVT_SIZE, self._on_scroll)

        coordinator = self._app.coordinator
        self._model = GalleryModel()
        self._tracker = ScrollTracker(
            self._model,
            measure=self._measure,
            on_changed=self._on_visibility_changed,
            updates=coordinator.updates,
            on_snapshot=lambda msg: wx.CallAfter(self._on_snapshot, msg),
            timer_factory=_CallLaterTimer,
        )
        # Subscribe first, then read the sequence before the files: a snapshot
        # published in between arrives through the subscription with a
        # higher sequence and replaces this one.
        sequence = coordinator.state.published_sequence
        self._model.mount(coordinator.snapshot, sequence)
        self._rebuild_tiles()

        self._win.Show()
        wx.CallAfter(self._win.Raise)
        coordinator.refresh()

    # ---- snapshot handling ----

    def _on_snapshot(self, message: FilesChanged) -> None:
        if self._model is None or self._win is None:
            return
        if self._model.apply_snapshot(message):
            self._rebuild_tiles()
            if self._tracker is not None:
                self._tracker.on_scroll()

    def _rebuild_tiles(self) -> None:
        if self._grid is None or self._scrolled is None or self._model is None:
            return
        self._scrolled.Freeze()
        try:
            self._grid.Clear(delete_windows=True)
            self._tiles = {}
            for file in self._model.files:
                tile = _Tile(self._scrolled, self, file)
                tile.set_visible(file.visible)
                self._grid.Add(tile.panel, flag=wx.ALL, border=_TILE_MARGIN)
                self._tiles[file.url] = tile
        finally:
            self._scrolled.Thaw()
        self._relayout()

    def _relayout(self) -> None:
        if self._scrolled is not None:
            self._scrolled.FitInside()
            self._scrolled.Layout()

    # ---- visibility ----

    def _on_scroll(self, event: wx.Event) -> None:
        event.Skip()
        if self._tracker is not None:
            self._tracker.on_scroll()

    def _measure(self) -> tuple[dict[str, Rect], Rect]:
        if self._scrolled is None:
            return {}, Rect(0, 0, 0, 0)
        width, height = self._scrolled.GetClientSize()
        rects: dict[str, Rect] = {}
        for url, tile in self._tiles.items():
            # Child positions are relative to the visible client area
            r = tile.panel.GetRect()
            rects[url] = Rect(r.x, r.y, r.width, r.height)
        return rects, Rect(0, 0, width, height)

    def _on_visibility_changed(self, indexes: list[int]) -> None:
        if self._model is None:
            return
        for i in indexes:
            file = self._model.files[i]
            tile = self._tiles.get(file.url)
            if tile is not None:
                tile.set_visible(file.visible)

    # ---- close ----

    def _on_char_hook(self, event: wx.KeyEvent) -> None:
        if event.GetKeyCode() == wx.WXK_ESCAPE:
            self._on_close()
        else:
            event.Skip()

    def _on_iconize(self, event: wx.IconizeEvent) -> None:
        # Minimising drops the window so thumbnails are not held in memory
        if event.IsIconized():
            wx.CallAfter(self._on_close)
        else:
            event.Skip()

    def _on_close_event(self, event: wx.CloseEvent) -> None:
        self._on_close()

    def _on_close(self) -> None:
        if self._tracker is not None:
            self._tracker.close()
            self._tracker = None
        self._model = None
        self._tiles = {}
        if self._win:
            self._win.Destroy()
            self._win = None
        self._scrolled = None
        self._grid = None


# ======================================================================
# Settings window
# ======================================================================


class SettingsWindow:
    """Settings dialog: capture folder, notifications, upload account."""

    def __init__(self, app: "App"):
        """Create the settings window (hidden until ``show`` is called)."""
        self._app = app
        self._win: wx.Dialog | None = None

    def show(self) -> None:
        """Show or focus the settings window."""
        if self._win is not None:
            self._win.Raise()
            self._win.SetFocus()
            return
        self._build()

    def _build(self) -> None:
        cfg = self._app.config

        self._win = wx.Dialog(
            None,
            title="record-desktop — Settings",
            size=(560, 340),
            style=wx.DEFAULT_DIALOG_STYLE | wx.RESIZE_BORDER,
        )
        self._win.Bind(wx.EVT_CLOSE, self._on_close_event)
        self._win.Bind(wx.EVT_CHAR_HOOK, self._on_char_hook)

        panel = wx.Panel(self._win)
        main_sizer = wx.BoxSizer(wx.VERTICAL)

        # ---- Header ----
        header = wx.StaticText(panel, label="Settings")
        header_font = header.GetFont()
        header_font.SetPointSize(14)
        header_font.MakeBold()
        header.SetFont(header_font)
        main_sizer.Add(header, flag=wx.ALL, border=10)

        grid = wx.FlexGridSizer(cols=3, vgap=6, hgap=5)
        grid.AddGrowableCol(1, 1)

        lbl = wx.StaticText(panel, label="Capture folder:")
        grid.Add(lbl, flag=wx.ALIGN_CENTER_VERTICAL | wx.LEFT, border=10)
        self._folder_ctrl = wx.TextCtrl(panel, value=cfg.folder)
        self._folder_ctrl.SetName("Capture folder")
        grid.Add(self._folder_ctrl, flag=wx.EXPAND)
        browse = wx.Button(panel, label="Browse…")
        browse.Bind(wx.EVT_BUTTON, self._browse_folder)
        grid.Add(browse, flag=wx.RIGHT, border=10)

        lbl = wx.StaticText(panel, label="imgur client id:")
        grid.Add(lbl, flag=wx.ALIGN_CENTER_VERTICAL | wx.LEFT, border=10)
        self._client_ctrl = wx.TextCtrl(panel, value=cfg.imgur_client_id)
        self._client_ctrl.SetName("imgur client id")
        grid.Add(self._client_ctrl, flag=wx.EXPAND)
        grid.AddSpacer(0)

        lbl = wx.StaticText(panel, label="Files in tray menu:")
        grid.Add(lbl, flag=wx.ALIGN_CENTER_VERTICAL | wx.LEFT, border=10)
        self._latest_spin = wx.SpinCtrl(
            panel, value=str(cfg.latest_count), min=1, max=20, size=(80, -1)
        )
        self._latest_spin.SetName("Files in tray menu")
        grid.Add(self._latest_spin)
        grid.AddSpacer(0)

        main_sizer.Add(grid, flag=wx.EXPAND | wx.BOTTOM, border=10)

        self._notify_cb = wx.CheckBox(panel, label="Show desktop notifications")
        self._notify_cb.SetValue(cfg.has_notifications)
        main_sizer.Add(self._notify_cb, flag=wx.LEFT | wx.BOTTOM, border=10)

        self._minimized_cb = wx.CheckBox(panel, label="Start with only the tray icon")
        self._minimized_cb.SetValue(cfg.start_minimized)
        main_sizer.Add(self._minimized_cb, flag=wx.LEFT | wx.BOTTOM, border=10)

        btn_sizer = wx.BoxSizer(wx.HORIZONTAL)
        save_btn = wx.Button(panel, wx.ID_SAVE, label="Save")
        save_btn.Bind(wx.EVT_BUTTON, self._on_save)
        btn_sizer.Add(save_btn, flag=wx.RIGHT, border=8)
        cancel_btn = wx.Button(panel, wx.ID_CANCEL, label="Cancel")
        cancel_btn.Bind(wx.EVT_BUTTON, lambda e: self._on_close())
        btn_sizer.Add(cancel_btn)
        main_sizer.Add(btn_sizer, flag=wx.ALIGN_RIGHT | wx.ALL, border=10)

        panel.SetSizer(main_sizer)
        self._win.Show()
        wx.CallAfter(self._win.Raise)

    def _on_char_hook(self, event: wx.KeyEvent) -> None:
        if event.GetKeyCode() == wx.WXK_ESCAPE:
            self._on_close()
        else:
            event.Skip()

    def _browse_folder(self, event: wx.CommandEvent) -> None:
        with wx.DirDialog(
            self._win,
            "Choose the capture folder",
            defaultPath=self._folder_ctrl.GetValue(),
        ) as dlg:
            if dlg.ShowModal() == wx.ID_OK:
                self._folder_ctrl.SetValue(dlg.GetPath())

    def _on_save(self, event: wx.CommandEvent) -> None:
        folder = self._folder_ctrl.GetValue().strip()
        if not folder:
            wx.MessageBox(
                "Please choose a capture folder.",
                "Settings",
                wx.OK | wx.ICON_WARNING,
                self._win,
            )
            return

        cfg = self._app.config
        cfg.folder = folder
        cfg.imgur_client_id = self._client_ctrl.GetValue()
        cfg.latest_count = self._latest_spin.GetValue()
        cfg.has_notifications = self._notify_cb.GetValue()
        cfg.start_minimized = self._minimized_cb.GetValue()
        cfg.save()
        logger.info("Settings saved.")
        self._on_close()

    def _on_close_event(self, event: wx.CloseEvent) -> None:
        self._on_close()

    def _on_close(self) -> None:
        if self._win:
            self._win.Destroy()
            self._win = None


def ask_save_path(url: str) -> str | None:
    """Ask where to save a copy of *url*; returns None if cancelled."""
    name = os.path.basename(url)
    ext = os.path.splitext(name)[1].lstrip(".") or "*"
    with wx.FileDialog(
        None,
        "Save as",
        defaultFile=name,
        wildcard=f"{ext.upper()} files (*.{ext})|*.{ext}|All files|*",
        style=wx.FD_SAVE | wx.FD_OVERWRITE_PROMPT,
    ) as dlg:
        if dlg.ShowModal() != wx.ID_OK:
            return None
        return dlg.GetPath()
