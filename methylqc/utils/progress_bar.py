# Lib
import logging
import sys


__all__ = ['tqdm', 'progress']


def in_notebook():
    """ True inside a Jupyter kernel, where the widget bar renders and the console bar doesn't. """
    return 'ipykernel' in sys.modules

if in_notebook():
    from tqdm.notebook import tqdm
else:
    from tqdm import tqdm


def progress(items, desc=None, logger=None):
    """Progress bar over a sized collection (usually samples).
    The bar is hidden unless `logger` (default: the methylqc package logger) shows INFO messages."""
    logger = logger or logging.getLogger('methylqc')
    return tqdm(items, total=len(items), desc=desc, disable=not logger.isEnabledFor(logging.INFO))
