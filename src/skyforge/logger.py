import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logger(name: str = "skyforge", level: int = logging.INFO) -> logging.Logger:
    """Configures and returns a logger with RichHandler."""

    logger = logging.getLogger(name)

    # Avoid adding duplicate handlers if setup is called multiple times

    if not logger.handlers:
        logger.setLevel(level)

        handler = RichHandler(
            console=Console(stderr=True), rich_tracebacks=True, markup=False
        )

        handler.setFormatter(logging.Formatter("%(message)s"))

        logger.addHandler(handler)

    else:
        logger.setLevel(level)

    return logger


# Global logger instance (INFO so provisioning progress is visible)


logger = setup_logger(level=logging.INFO)
