# App
from .data_frames import *  # NOQA
from .data_frames import __all__ as data_frame_utils
from .files import *  # NOQA
from .files import __all__ as file_utils


__all__ = data_frame_utils + file_utils
