"""record-desktop: tray gallery for screenshots and screen recordings.

Watches a folder for new captures, lists the latest ones in the system
tray and shows all of them in a scrollable gallery window with upload,
copy, open, save-as and delete actions.
"""

__version__ = "1.0.0"
__app_name__ = "record-desktop"
