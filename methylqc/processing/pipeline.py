# Lib
import logging
from pathlib import Path
import pandas as pd
# App
from ..files import ProbeAnnotation, get_sample_sheet, load_intensity_matrix, read_cross_reactive_probes
from ..utils import check_alignment, check_same_samples, write_table
from ..utils.files import FILE_FORMATS
from .aggregate import CohortAggregator, read_covariates
from .detection import DETECTION_METHODS, check_threshold, compute_detection_pvalues, drop_failed_samples
from .exclusion import EXCLUSION_STEPS, ProbeExclusionPipeline, default_passes, filter_report
from .normalization import normalize, warn_if_multiple_tissues


__all__ = ['PipelineResult', 'run_pipeline', 'make_pipeline']

LOGGER = logging.getLogger(__name__)

ALLOWED_EXPORTS = ('all', 'beta', 'm_value', 'detection_pvalues', 'sample_sheet_meta_data', 'qc_report', 'cohort_summary')


class PipelineResult():
    """Everything one pipeline run produced. Each stage's output is its own attribute; nothing is overwritten.

    intensities -- IntensityMatrix after sample QC
    detection -- DetectionPValueMatrix after sample QC
    meta_data -- sample sheet meta data after sample QC, in matrix column order
    failed_samples -- sample ids removed by detection QC
    raw, normalized -- DerivedValueMatrix before and after quantile normalization (all probes)
    filtered -- DerivedValueMatrix after probe exclusion
    filter_results -- FilterResult per exclusion pass
    summary -- cohort summary (mean beta + covariates), or None without covariates
    """

    def __init__(self, intensities, detection, meta_data, failed_samples, raw, normalized,
                 filtered, filter_results, summary=None):
        self.intensities = intensities
        self.detection = detection
        self.meta_data = meta_data
        self.failed_samples = failed_samples
        self.raw = raw
        self.normalized = normalized
        self.filtered = filtered
        self.filter_results = filter_results
        self.summary = summary

    @property
    def beta(self):
        return self.filtered.beta

    @property
    def m_value(self):
        return self.filtered.m_value

    def qc_report(self):
        """one row per QC step, in the order they ran; the first row counts samples, the rest count probes."""
        sample_row = pd.DataFrame([{
            'unit': 'samples',
            'step': 'sample_detection',
            'n_in': len(self.meta_data) + len(self.failed_samples),
            'n_out': len(self.meta_data),
            'n_removed': len(self.failed_samples),
            'missing_annotation': 0,
        }])
        report = filter_report(self.filter_results).rename(
            columns={'probes_in': 'n_in', 'probes_out': 'n_out', 'probes_removed': 'n_removed'})
        report.insert(0, 'unit', 'probes')
        return pd.concat([sample_row, report], ignore_index=True)

    def __repr__(self):
        return f'PipelineResult({self.filtered}, {len(self.failed_samples)} samples failed)'


def run_pipeline(data_dir, annotation_filepath, cross_reactive_filepath,
                 sample_sheet_filepath=None, covariates_filepath=None,
                 meth_filepath=None, unmeth_filepath=None, controls_filepath=None, probe_types_filepath=None,
                 detection_method='minfi', sample_threshold=0.05, probe_threshold=0.01,
                 beta_offset=100, stratify_by_type=True, strict_metadata=True,
                 export=False, file_format='pickle', **kwargs):
    """The main processing pipeline. Runs every QC and normalization step and returns a PipelineResult.

    Required Arguments:
        data_dir [required]
            path where the sample sheet and the meth_values / unmeth_values / negative_control_values
            tables can be found. Exports are written here.
        annotation_filepath [required]
            probe annotation csv (IlmnID, CHR, SNP columns) for the array release the data was scanned with.
        cross_reactive_filepath [required]
            list of cross-reactive probe ids.

    Optional file inputs:
        sample_sheet_filepath
            it will autodetect if omitted.
        covariates_filepath
            clinical/exposure table keyed by Sample_ID. If given, the cohort summary is built.
        meth_filepath, unmeth_filepath, controls_filepath, probe_types_filepath
            override the default table names in data_dir.

    Optional processing arguments:
        detection_method [default: minfi]
            'minfi' or 'negative_ecdf'
        sample_threshold [default: 0.05]
            samples with a mean detection p-value above this are removed.
        probe_threshold [default: 0.01]
            probes need a detection p-value below this in every remaining sample.
        beta_offset [default: 100]
            added to the beta denominator.
        stratify_by_type [default: True]
            quantile normalize type I and type II probes separately (needs probe_types).
        strict_metadata [default: True]
            unmatched samples between the cohort and the covariates raise an error instead of being dropped.

    Optional export files:
        export [default: False]
            if True, saves beta_values, m_values, detection_pvalues, sample_sheet_meta_data, qc_report
            (and cohort_summary) to data_dir.
        file_format [default: pickle; optional: parquet, csv]

    Pipeline steps:
        1 read sample sheet, intensities, annotation and cross-reactive list
        2 detection p-values; drop failing samples from every table
        3 quantile normalization of surviving samples
        4 probe exclusion: detection, sex chromosome, polymorphism, cross-reactive
        5 beta and m values for the filtered probes
        6 mean beta per sample joined with covariates
        7 export
    """
    steps = list(EXCLUSION_STEPS)
    exports = ['all'] if export else []
    hidden_kwargs = ['pipeline_steps', 'pipeline_exports']
    for kwarg in kwargs:
        if kwarg not in hidden_kwargs:
            raise KeyError(f"One of your parameters ({kwarg}) was not recognized. Did you misspell it?")
    if 'pipeline_steps' in kwargs:
        steps = kwargs['pipeline_steps']
        if 'all' in steps:
            steps = list(EXCLUSION_STEPS)
    if 'pipeline_exports' in kwargs:
        exports = kwargs['pipeline_exports']
    if 'all' in exports:
        exports = list(ALLOWED_EXPORTS[1:])

    if detection_method not in DETECTION_METHODS:
        raise ValueError(f"detection_method must be one of {DETECTION_METHODS}; you said {detection_method}")
    check_threshold(sample_threshold, 'sample_threshold')
    check_threshold(probe_threshold, 'probe_threshold')
    if file_format not in FILE_FORMATS:
        raise ValueError(f"file_format must be one of {FILE_FORMATS}; you said {file_format}")

    LOGGER.info('Running pipeline in: %s', data_dir)
    sample_sheet = get_sample_sheet(data_dir, filepath=sample_sheet_filepath)
    matrix, meta_data = load_intensity_matrix(
        sample_sheet,
        data_dir=data_dir,
        meth_filepath=meth_filepath,
        unmeth_filepath=unmeth_filepath,
        controls_filepath=controls_filepath,
        probe_types_filepath=probe_types_filepath,
    )
    annotation = ProbeAnnotation(annotation_filepath)
    annotation.check_compatible(matrix.array_type)
    cross_reactive = read_cross_reactive_probes(cross_reactive_filepath)
    covariates = read_covariates(covariates_filepath) if covariates_filepath else None

    # sample QC; the three co-indexed tables lose failing samples together
    detp = compute_detection_pvalues(matrix, method=detection_method)
    sample_qc = drop_failed_samples(matrix, detp, meta_data, threshold=sample_threshold)

    warn_if_multiple_tissues(sample_qc.meta_data)
    raw, normalized = normalize(sample_qc.matrix, stratify_by_type=stratify_by_type, offset=beta_offset)
    sample_qc.detection.check_aligned(normalized, 'normalization')

    exclusion = ProbeExclusionPipeline(default_passes(
        sample_qc.detection, annotation, cross_reactive, threshold=probe_threshold, steps=steps))
    filtered, filter_results = exclusion.run(normalized)
    check_alignment(filtered.beta, filtered.m_value, 'probe exclusion')
    check_same_samples(filtered.samples, sample_qc.meta_data, 'probe exclusion')

    summary = None
    if covariates is not None:
        # covariate rows for samples removed by detection QC are expected, not a mismatch
        dropped = covariates['Sample_ID'].isin(sample_qc.failed)
        if dropped.any():
            LOGGER.info(f"Ignoring covariates for {int(dropped.sum())} samples that failed detection QC")
        aggregator = CohortAggregator(covariates[~dropped], strict=strict_metadata)
        summary = aggregator.aggregate(filtered.beta, sample_qc.meta_data)

    result = PipelineResult(
        intensities=sample_qc.matrix,
        detection=sample_qc.detection,
        meta_data=sample_qc.meta_data,
        failed_samples=sample_qc.failed,
        raw=raw,
        normalized=normalized,
        filtered=filtered,
        filter_results=filter_results,
        summary=summary,
    )
    LOGGER.info(f"Finished: {result}")

    if exports:
        _export(result, data_dir, exports, file_format)
    return result


def _export(result, data_dir, exports, file_format):
    saved = []
    if 'beta' in exports:
        saved.append(write_table(result.beta.astype('float32'), data_dir, 'beta_values', file_format))
    if 'm_value' in exports:
        saved.append(write_table(result.m_value.astype('float32'), data_dir, 'm_values', file_format))
    if 'detection_pvalues' in exports:
        saved.append(write_table(result.detection.data_frame.astype('float32'), data_dir, 'detection_pvalues', file_format))
    if 'sample_sheet_meta_data' in exports:
        saved.append(write_table(result.meta_data, data_dir, 'sample_sheet_meta_data', file_format, index=False))
    if 'qc_report' in exports:
        saved.append(write_table(result.qc_report(), data_dir, 'qc_report', 'csv', index=False))
    if 'cohort_summary' in exports and result.summary is not None:
        saved.append(CohortAggregator.export(result.summary, data_dir, file_format=file_format))
    LOGGER.info(f"[!] Exported {len(saved)} files to {Path(data_dir)}")
    return saved


def make_pipeline(data_dir='.', steps=None, exports=None, **kwargs):
    """Specify a list of probe exclusion steps and export files for run_pipeline, then run it.

    steps:
        list of exclusion passes to apply (in the fixed order), or ['all']
        ['all', 'detection', 'sex_chromosome', 'polymorphism', 'cross_reactive']
    exports:
        list of files to be saved; anything not specified is not saved; ['all'] saves everything.
        ['all', 'beta', 'm_value', 'detection_pvalues', 'sample_sheet_meta_data', 'qc_report', 'cohort_summary']

    Any other run_pipeline keyword (annotation_filepath, cross_reactive_filepath, thresholds, ...) passes through.
    Sample detection QC and quantile normalization always run.
    """
    allowed_steps = ('all',) + EXCLUSION_STEPS
    if steps is None:
        steps = ['all']
    if exports is None:
        exports = []
    if not isinstance(steps, (tuple, list)) or not set(steps).issubset(set(allowed_steps)):
        raise ValueError(f"steps, the second argument, must be a list or tuple of names of allowed processing steps: {allowed_steps} or ['all']; you said {steps}")
    if not isinstance(exports, (tuple, list)) or not set(exports).issubset(set(ALLOWED_EXPORTS)):
        raise ValueError(f"[exports] must be a list or tuple of names of allowed exports: {ALLOWED_EXPORTS}, or ['all']; you said {exports}")
    if 'export' in kwargs:
        raise KeyError("make_pipeline uses exports=[...] instead of export=True")
    return run_pipeline(data_dir, pipeline_steps=list(steps), pipeline_exports=list(exports), **kwargs)
