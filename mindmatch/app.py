"""Application entry point and setup for Mind Match."""

import logging
import sys

from PySide6.QtGui import QFont, QGuiApplication
from PySide6.QtWidgets import QApplication

from mindmatch.core.config import load_settings
from mindmatch.core.faces import FacePool
from mindmatch.core.levels import LevelCatalog
from mindmatch.core.progress import JsonProgressStore, ProgressController
from mindmatch.ui.main_window import MainWindow


def configure_logging() -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def apply_application_font(app: QApplication) -> None:
    """Large default text, with emoji fonts as fallbacks so card pictures render."""
    app_font = QFont()
    app_font.setFamilies(
        [
            app_font.family(),
            "Noto Color Emoji",  # Linux (common)
            "Noto Emoji",
            "Segoe UI Emoji",  # Windows
            "Apple Color Emoji",  # macOS
        ]
    )
    app_font.setPointSize(13)
    app.setFont(app_font)
    QGuiApplication.setFont(app_font)


def run() -> None:
    """Load settings and data, then start the main window."""
    configure_logging()
    app = QApplication(sys.argv)
    app.setApplicationName("Mind Match")
    app.setApplicationDisplayName("Mind Match")
    apply_application_font(app)

    settings = load_settings()
    face_pool = FacePool.load()
    catalog = LevelCatalog(max_faces=len(face_pool), settings=settings)
    progress = ProgressController(JsonProgressStore(), catalog)
    logging.info(
        "Loaded %d faces, %d levels; resuming at level %d",
        len(face_pool),
        catalog.level_count,
        progress.resume(),
    )

    window = MainWindow(catalog=catalog, face_pool=face_pool, progress=progress, settings=settings)
    screen = QGuiApplication.primaryScreen()
    if screen is not None:
        window.setGeometry(screen.availableGeometry())
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    run()
