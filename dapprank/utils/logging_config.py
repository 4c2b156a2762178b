import logging
import sys

LEVELS = {'error': logging.ERROR, 'warn': logging.WARNING, 'warning': logging.WARNING, 'info': logging.INFO, 'debug': logging.DEBUG}

def setup_logger(name: str, level: str | None=None, format_string: str | None=None) -> logging.Logger:
    logger = logging.getLogger(name)
    root = logging.getLogger('dapprank')
    if root.handlers:
        if level:
            logger.setLevel(LEVELS.get(level.lower(), logging.INFO))
        return logger
    root.setLevel(LEVELS.get((level or 'error').lower(), logging.ERROR))
    handler = logging.StreamHandler(sys.stderr)
    default_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    handler.setFormatter(logging.Formatter(format_string or default_format))
    root.addHandler(handler)
    root.propagate = False
    return logger

def get_logger(name: str, level: str | None=None) -> logging.Logger:
    return setup_logger(name, level)

def set_log_level(level: str='error') -> None:
    target_level = LEVELS.get(level.lower(), logging.ERROR)
    root_logger = logging.getLogger('dapprank')
    root_logger.setLevel(target_level)
    for name in list(logging.Logger.manager.loggerDict.keys()):
        if name.startswith('dapprank.'):
            logging.getLogger(name).setLevel(logging.NOTSET)
    for handler in root_logger.handlers:
        handler.setLevel(target_level)
