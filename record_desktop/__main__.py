"""Entry point for record-desktop.

Usage:
    python -m record_desktop            Launch the tray application
    python -m record_desktop --gallery  Launch and open the gallery window
"""

import sys


def main() -> None:
    """Launch the tray application."""
    from record_desktop.app import App

    app = App(show_gallery="--gallery" in sys.argv[1:])
    app.run()


if __name__ == "__main__":
    main()
