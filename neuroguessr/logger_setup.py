# logger_setup.py
import logging
import os

LOG_DIR = "logs"


def setup_logger(name, log_file=None, level=logging.INFO):
    if log_file is None:
        log_file = os.path.join(LOG_DIR, f"{name}.log")
    os.makedirs(os.path.dirname(log_file), exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # app factories may run more than once per process
    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        formatter = logging.Formatter('%(asctime)s | %(name)s | %(levelname)s | %(message)s')
        handler = logging.FileHandler(log_file)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
