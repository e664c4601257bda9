#!/usr/bin/env python
"""
CleanPic GUI Application Entry Point.

This script launches the desktop client for painting inpainting masks and
sending them to the remote model.
"""

import sys
from pathlib import Path

# Add src to path for development
src_path = Path(__file__).parent.parent / "src"
if src_path.exists():
    sys.path.insert(0, str(src_path))

from PySide6.QtWidgets import QApplication  # noqa: E402
from cleanpic_ui.config import GATEWAY_MODE  # noqa: E402
from cleanpic_ui.core.gateway import create_gateway  # noqa: E402
from cleanpic_ui.logger import setup_logging  # noqa: E402
from cleanpic_ui.ui.main_window import MainWindow  # noqa: E402


def main():
    """
    Launch the CleanPic GUI application.

    Returns
    -------
    int
        Exit code (0 for success)
    """
    setup_logging()

    # Create application
    app = QApplication(sys.argv)
    app.setApplicationName("CleanPic")
    app.setOrganizationName("CleanPic")

    # Set application style
    app.setStyle("Fusion")

    # Create main window
    window = MainWindow(create_gateway(GATEWAY_MODE))

    # Show window
    window.show()

    # Start event loop
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
