#!/usr/bin/env python3
import logging
import sys

from .config import default_config_path, load_config
from .controller import FanController
from .errors import ConfigError
from .scheduler import Scheduler

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def setup_logging(log_file=None) -> logging.Logger:
    """Configure the package logger for stderr and, optionally, a log file.

    A log file that cannot be opened (e.g. when not running as root) is
    reported and otherwise ignored.
    """
    logger = logging.getLogger('autofan')
    logger.setLevel(logging.INFO)
    logger.propagate = False
    fmt = logging.Formatter(LOG_FORMAT)
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(fmt)
        logger.addHandler(sh)
    if log_file:
        try:
            fh = logging.FileHandler(log_file)
        except OSError as e:
            logger.warning(f"Cannot open log file {log_file}: {e}")
        else:
            fh.setFormatter(fmt)
            logger.addHandler(fh)
    return logger


def main():
    logger = setup_logging()
    config_file = default_config_path()
    try:
        config = load_config(config_file, logger)
    except ConfigError as e:
        logger.error(f"configuring: {e}")
        sys.exit(1)
    if config.log_file:
        setup_logging(config.log_file)
    logger.info(f"Loaded configuration from {config_file}")

    controller = FanController(config, logger=logger)
    Scheduler(controller, config.interval, logger=logger).run()


if __name__ == "__main__":
    main()
