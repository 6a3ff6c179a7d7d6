"""Package logger setup.

All modules log through children of the ``mockup_editor`` logger, which
writes to ``logs/mockup_editor.log`` beside the package (or to
``$MOCKUP_EDITOR_LOG_DIR``).
"""
import logging
import os

LOGGER_NAME = 'mockup_editor'


def _log_dir():
    env_dir = os.environ.get('MOCKUP_EDITOR_LOG_DIR')
    if env_dir:
        return env_dir
    return os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'logs')


def _configure(logger):
    # Check if handler already exists to avoid duplicate logs
    if logger.handlers:
        return
    log_dir = _log_dir()
    os.makedirs(log_dir, exist_ok=True)
    fh = logging.FileHandler(os.path.join(log_dir, 'mockup_editor.log'))
    fh.setLevel(logging.INFO)
    fh.setFormatter(logging.Formatter('%(asctime)s - %(message)s'))
    logger.addHandler(fh)
    logger.setLevel(logging.INFO)


def get_logger(name=None):
    """Return the package logger, or a named child of it."""
    root = logging.getLogger(LOGGER_NAME)
    _configure(root)
    if not name:
        return root
    return root.getChild(name.rsplit('.', 1)[-1])
