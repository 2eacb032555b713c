from .annotations import ProbeAnnotation
from .cross_reactive import read_cross_reactive_probes
from .intensities import load_intensity_matrix
from .sample_sheets import SampleSheet, get_sample_sheet, find_sample_sheet


__all__ = [
    'ProbeAnnotation',
    'SampleSheet',
    'get_sample_sheet',
    'find_sample_sheet',
    'load_intensity_matrix',
    'read_cross_reactive_probes',
]
