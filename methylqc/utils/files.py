# Lib
import gzip
import logging
from pathlib import Path, PurePath
import pandas as pd


__all__ = [
    'ensure_directory_exists',
    'get_file_object',
    'is_file_like',
    'read_table',
    'reset_file',
    'write_table',
]


LOGGER = logging.getLogger(__name__)

FILE_FORMATS = ('pickle', 'parquet', 'csv')
SUFFIXES = {'pickle': 'pkl', 'parquet': 'parquet', 'csv': 'csv'}


def make_path_like(path_like):
    """Attempts to convert a string to a Path instance."""

    if isinstance(path_like, Path):
        return path_like

    try:
        return Path(path_like)
    except TypeError:
        raise TypeError(f'could not convert to Path: {path_like}')


def require_path(inner):
    """Decorator that ensure the argument provided to the inner function
    is a Path instance."""

    def wrapped(orig_path, *args, **kwargs):
        path_like = make_path_like(orig_path)
        return inner(path_like, *args, **kwargs)

    return wrapped


@require_path
def ensure_directory_exists(path_like):
    """Ensures the ancestor directories of the provided path
    exist, making them if they do not."""
    if path_like.exists():
        return

    parent_dir = path_like
    if path_like.suffix:
        parent_dir = path_like.parent

    parent_dir.mkdir(parents=True, exist_ok=True)


def is_file_like(obj):
    """Check if the object is a file-like object.
    For objects to be considered file-like, they must be an iterator AND have either a
    `read` and/or `write` method as an attribute.
    Note: file-like objects must be iterable, but iterable objects need not be file-like.

    Arguments:
        obj {any} --The object to check.

    Returns:
        [boolean] -- [description]

    Examples:
    --------
    >>> buffer(StringIO("data"))
    >>> is_file_like(buffer)
    True
    >>> is_file_like([1, 2, 3])
    False
    """

    if not (hasattr(obj, 'read') or hasattr(obj, 'write')):
        return False

    if not hasattr(obj, '__iter__'):
        return False

    return True


def get_file_object(filepath_or_buffer):
    """Returns a file-like object based on the provided input.
    If the input argument is a string, it will attempt to open the file
    in 'rb' mode.
    """
    if is_file_like(filepath_or_buffer):
        return filepath_or_buffer

    if PurePath(filepath_or_buffer).suffix == '.gz':
        return gzip.open(filepath_or_buffer, 'rb')

    return open(filepath_or_buffer, 'rb')


def reset_file(filepath_or_buffer):
    """Attempts to return the open file to the beginning if it is seekable."""
    if not hasattr(filepath_or_buffer, 'seek'):
        return

    filepath_or_buffer.seek(0)


def _format_from_suffix(filepath):
    suffixes = [s.lower() for s in PurePath(filepath).suffixes if s.lower() != '.gz']
    suffix = suffixes[-1] if suffixes else ''
    if suffix in ('.pkl', '.pickle'):
        return 'pickle'
    if suffix == '.parquet':
        return 'parquet'
    if suffix in ('.csv', '.txt', '.tsv'):
        return 'csv'
    raise ValueError(f"Cannot tell the file format of {filepath}; use .pkl, .parquet or .csv")


def read_table(filepath, index_col=0):
    """Reads a pickled, parquet or csv data frame, choosing the reader from the file suffix.
    csv files keep their first column as the index unless index_col=None."""
    file_format = _format_from_suffix(filepath)
    if file_format == 'pickle':
        return pd.read_pickle(filepath)
    if file_format == 'parquet':
        return pd.read_parquet(filepath)
    sep = '\t' if '.tsv' in PurePath(filepath).suffixes else ','
    return pd.read_csv(filepath, index_col=index_col, sep=sep)


def write_table(df, data_dir, file_stem, file_format='pickle', index=True):
    """Saves a data frame as <data_dir>/<file_stem>.<suffix> and returns the path."""
    if file_format not in FILE_FORMATS:
        raise ValueError(f"file_format must be one of {FILE_FORMATS}; you said {file_format}")
    outfile = Path(data_dir, f"{file_stem}.{SUFFIXES[file_format]}")
    ensure_directory_exists(outfile)
    if file_format == 'parquet':
        df.to_parquet(outfile)
    elif file_format == 'csv':
        df.to_csv(outfile, index=index)
    else:
        df.to_pickle(outfile)
    LOGGER.info(f"saved {outfile.name}")
    return outfile
