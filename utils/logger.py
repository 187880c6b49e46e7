import logging
import os
from datetime import date


LOGGER_NAME = 'stayhub'
LOG_FORMAT = '%(asctime)s %(levelname)-7s %(name)s: %(message)s'


def init_logger(level='INFO', log_dir='logs'):
    """
    Sets up the application logger to write to stdout and, when `log_dir`
    is set, to a daily file logs/messages-YYYY-MM-DD.log.
    The services log through children of this logger ('stayhub.bookings', ...).
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        filename = os.path.join(log_dir, f'messages-{date.today().isoformat()}.log')
        file_handler = logging.FileHandler(filename, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name):
    return logging.getLogger(f'{LOGGER_NAME}.{name}')
