# logging_config.py
import logging


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once (console handler only).

    Calling it again is a no-op, which matters when the app module is
    imported several times by uvicorn's reloader or by the test suite.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root.addHandler(handler)
