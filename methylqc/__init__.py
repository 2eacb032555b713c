# Lib
from logging import NullHandler, getLogger
# App
from .files import get_sample_sheet, ProbeAnnotation
from .processing import (
    run_pipeline,
    make_pipeline,
    CohortAggregator,
    ProbeExclusionPipeline,
    )
from .models import ArrayType, IntensityMatrix, DetectionPValueMatrix, DerivedValueMatrix
from .exceptions import (
    MethylQCError,
    IndexMismatchError,
    AllSamplesFailedError,
    AllProbesFailedError,
    MissingAnnotationError,
    MetadataJoinMismatchError,
    )
from .version import __version__

getLogger(__name__).addHandler(NullHandler())

__all__ = [
    'ArrayType',
    'ProbeAnnotation',
    'IntensityMatrix',
    'DetectionPValueMatrix',
    'DerivedValueMatrix',
    'get_sample_sheet',
    'CohortAggregator',
    'ProbeExclusionPipeline',
    'run_pipeline',
    'make_pipeline',
    'MethylQCError',
    'IndexMismatchError',
    'AllSamplesFailedError',
    'AllProbesFailedError',
    'MissingAnnotationError',
    'MetadataJoinMismatchError',
]
