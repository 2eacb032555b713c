from .arrays import ArrayType
from .samples import Sample
from .matrices import IntensityMatrix, DetectionPValueMatrix, DerivedValueMatrix

__all__ = [
    'ArrayType',
    'DerivedValueMatrix',
    'DetectionPValueMatrix',
    'IntensityMatrix',
    'Sample',
]
