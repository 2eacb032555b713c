from .detection import compute_detection_pvalues, sample_failure_mask, probe_failure_mask, drop_failed_samples
from .normalization import quantile_normalize, normalize
from .postprocess import calculate_beta_value, calculate_m_value, build_derived_values
from .exclusion import FilterResult, ProbeExclusionPipeline, default_passes
from .aggregate import CohortAggregator
from .pipeline import PipelineResult, run_pipeline, make_pipeline

__all__ = [
    'compute_detection_pvalues',
    'sample_failure_mask',
    'probe_failure_mask',
    'drop_failed_samples',
    'quantile_normalize',
    'normalize',
    'calculate_beta_value',
    'calculate_m_value',
    'build_derived_values',
    'FilterResult',
    'ProbeExclusionPipeline',
    'default_passes',
    'CohortAggregator',
    'PipelineResult',
    'run_pipeline',
    'make_pipeline',
]
