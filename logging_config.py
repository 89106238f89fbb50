import logging
from pathlib import Path
from typing import Iterable

LOG_FORMAT = "%(asctime)s - %(levelname)s : [%(name)s] %(message)s - (%(filename)s : %(lineno)s)"
NOISY_LOGGERS = ("urllib3", "httpx", "multipart", "numba")


def setup_logging(
    log_path: str = "./app.log",
    level: int = logging.INFO,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Console + file logging for both the API server and the voice CLI.

    Called again (e.g. uvicorn reload, tests) it leaves existing handlers alone.
    """
    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)

    root = logging.getLogger()
    if root.handlers:
        return
    root.setLevel(logging.DEBUG)

    formatter = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    console.setLevel(level)
    root.addHandler(console)

    # ファイルには DEBUG まで残す（無視した発話などの追跡用）
    Path(log_path).parent.mkdir(parents=True, exist_ok=True)
    log_file = logging.FileHandler(log_path, encoding="utf-8")
    log_file.setFormatter(formatter)
    log_file.setLevel(logging.DEBUG)
    root.addHandler(log_file)
