import logging
from pathlib import Path

LOG_DIR = Path.cwd() / "logs"
LOG_FILE = LOG_DIR / "app.log"

LOG_MODES = ("off", "info", "debug")

# Log mode comes from the loaded configuration (see set_log_mode)
_log_mode = "info"

# File output is switched on by the CLI so that importing the package
# never creates a logs/ directory by itself
_file_logging_enabled = False


def _level_for(log_mode: str) -> int:
    if log_mode == 'debug':
        return logging.DEBUG
    if log_mode == 'off':
        # Off mode: a level higher than CRITICAL disables all logging
        return logging.CRITICAL + 1
    return logging.INFO


def _formatter() -> logging.Formatter:
    return logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')


def _make_file_handler() -> logging.FileHandler:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    f_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
    f_handler.setLevel(logging.DEBUG)
    f_handler.setFormatter(_formatter())
    return f_handler


def _apply_mode(logger: logging.Logger):
    """Bring a logger created by get_logger in line with the current settings."""
    target_level = _level_for(_log_mode)
    logger.setLevel(target_level)

    want_file = _file_logging_enabled and _log_mode != 'off'
    has_file_handler = any(isinstance(h, logging.FileHandler) for h in logger.handlers)

    if want_file and not has_file_handler:
        logger.addHandler(_make_file_handler())
    elif not want_file and has_file_handler:
        handlers_to_remove = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        for handler in handlers_to_remove:
            handler.close()
            logger.removeHandler(handler)

    # Update console handlers
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(target_level)


def _refresh_loggers():
    # Only loggers that have handlers were created by get_logger
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        if not logger_name.startswith('chaptrans'):
            continue
        logger = logging.getLogger(logger_name)
        if logger.handlers:
            _apply_mode(logger)


def get_log_mode() -> str:
    return _log_mode


def set_log_mode(log_mode: str):
    """Switch the log mode and update every existing project logger."""
    global _log_mode
    _log_mode = log_mode if log_mode in LOG_MODES else 'info'
    _refresh_loggers()


def enable_file_logging(enabled: bool = True):
    """Add (or remove) the logs/app.log handler on every project logger."""
    global _file_logging_enabled
    _file_logging_enabled = enabled
    _refresh_loggers()


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)

    # Prevent duplicate handlers if logger already configured
    if logger.handlers:
        _apply_mode(logger)
        return logger

    c_handler = logging.StreamHandler()
    c_handler.setFormatter(_formatter())
    logger.addHandler(c_handler)

    _apply_mode(logger)
    return logger
