"""
Application entry point and dark-theme stylesheet.

Usage:
    python -m grid_split_tool.app
    grid-split-tool          (after pip install)
"""

import logging
import os
import sys

from PyQt6.QtWidgets import QApplication

from grid_split_tool.main_window import MainWindow

DARK_STYLESHEET = """
    QMainWindow { background: #15202b; }
    QWidget { background: #15202b; color: #e7e9ea; font-size: 10pt; }
    QTabWidget::pane { border: 1px solid #38444d; }
    QTabBar::tab { background: #192734; padding: 6px 16px; border: 1px solid #38444d; }
    QTabBar::tab:selected { background: #1d9bf0; color: #fff; }
    QListWidget { background: #10171e; border: 1px solid #38444d; }
    QListWidget::item { padding: 4px; }
    QListWidget::item:selected { background: #1d9bf0; }
    QLineEdit, QSpinBox, QComboBox { background: #10171e; border: 1px solid #38444d; border-radius: 4px; padding: 3px; }
    QGroupBox { border: 1px solid #38444d; border-radius: 4px; margin-top: 8px; padding-top: 12px; font-weight: bold; }
    QGroupBox::title { subcontrol-origin: margin; left: 8px; padding: 0 4px; }
    QPushButton { background: #22303c; border: 1px solid #38444d; border-radius: 4px; padding: 6px 12px; }
    QPushButton:hover { background: #2c3e4e; }
    QPushButton:pressed { background: #192734; }
    QPushButton:checked { background: #1d9bf0; border-color: #4ab3f4; }
    QPushButton:disabled { color: #5b6670; }
    QStatusBar { background: #192734; border-top: 1px solid #38444d; }
"""


def main():
    logging.basicConfig(
        level=os.environ.get("GRID_SPLIT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = QApplication(sys.argv)
    app.setStyleSheet(DARK_STYLESHEET)

    window = MainWindow()
    window.show()

    try:
        sys.exit(app.exec())
    except (SystemExit, KeyboardInterrupt):
        pass


if __name__ == "__main__":
    main()
