import logging
import sys
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


def setup_logging(level: int = logging.INFO, fmt: Optional[str] = None) -> None:
	"""Configure root logging once. Subsequent calls are no-ops.
	Log records go to stderr so the rendered report on stdout stays clean.
	"""
	root = logging.getLogger()
	if root.handlers:
		return
	format_str = fmt or DEFAULT_FORMAT
	logging.basicConfig(level=level, format=format_str, stream=sys.stderr)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	"""Named logger (the package logger when name is empty); configures logging on first use."""
	setup_logging()
	return logging.getLogger(name) if name else logging.getLogger("zim")


def log_exception(logger: logging.Logger, message: str = "An error occurred", exc_info: Exception = None) -> None:
	"""Log an error with the exception type and text; the traceback is only shown at debug level.

	Args:
		logger: Logger instance to use
		message: What was being attempted
		exc_info: Exception instance (if None, uses current exception context)
	"""
	if exc_info is not None:
		logger.error(f"{message}: {type(exc_info).__name__}: {exc_info}")
	else:
		logger.error(message)
	logger.debug("Traceback:", exc_info=exc_info if exc_info is not None else True)
