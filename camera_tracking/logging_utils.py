import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(camera)s] %(name)s: %(message)s"

# Core modules log under this name; their records share the camera handlers.
CORE_LOGGER = "pose_pipeline"


class CameraNameFilter(logging.Filter):
    def __init__(self, camera_name: str):
        super().__init__()
        self.camera_name = camera_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.camera = self.camera_name
        return True


def _make_handler(handler: logging.Handler, camera_name: str) -> logging.Handler:
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(CameraNameFilter(camera_name))
    return handler


def setup_logger(camera_name: str, level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(f"camera_tracking.{camera_name}")
    logger.setLevel(level)

    if not logger.handlers:
        logger.addHandler(_make_handler(logging.StreamHandler(), camera_name))

    core = logging.getLogger(CORE_LOGGER)
    core.setLevel(level)
    if not core.handlers:
        core.addHandler(_make_handler(logging.StreamHandler(), camera_name))

    return logger


def add_file_handler(logger: logging.Logger, camera_name: str, log_path: str) -> logging.Handler:
    """Mirror ``logger`` and the core logger into ``log_path``; returns the handler."""
    handler = _make_handler(logging.FileHandler(log_path), camera_name)
    logger.addHandler(handler)
    logging.getLogger(CORE_LOGGER).addHandler(handler)
    return handler


def remove_file_handler(logger: logging.Logger, handler: logging.Handler) -> None:
    logger.removeHandler(handler)
    logging.getLogger(CORE_LOGGER).removeHandler(handler)
    handler.close()
