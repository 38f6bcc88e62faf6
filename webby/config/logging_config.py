import logging
import os


def configure_logging(level: str | None = None) -> logging.Logger:
	level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
	logging.basicConfig(level=level_name, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
	return logging.getLogger()
