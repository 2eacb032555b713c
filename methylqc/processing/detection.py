# Lib
import logging
import numpy as np
import pandas as pd
from scipy.stats import norm
from statsmodels import robust
from statsmodels.distributions.empirical_distribution import ECDF
# App
from ..exceptions import AllSamplesFailedError
from ..models import DetectionPValueMatrix
from ..utils import check_alignment, check_same_samples
from ..utils.progress_bar import progress


__all__ = [
    'compute_detection_pvalues',
    'sample_failure_mask',
    'probe_failure_mask',
    'drop_failed_samples',
    'SampleQCResult',
    'DETECTION_METHODS',
]


LOGGER = logging.getLogger(__name__)

DETECTION_METHODS = ('minfi', 'negative_ecdf')


def check_threshold(threshold, name='threshold'):
    if not isinstance(threshold, (int, float)) or isinstance(threshold, bool) or not 0 <= threshold <= 1:
        raise ValueError(f"{name} must be a number between 0 and 1; you said {threshold}")


def _frame(detp):
    if isinstance(detp, DetectionPValueMatrix):
        return detp.data_frame
    return detp


def _pval_minfi(total, negative):
    """ normal model of background, like minfi::detectionP.
    The meth+unmeth total is compared to twice the negative control median/MAD (one per channel). """
    negative = negative[~np.isnan(negative)]
    mu = np.median(negative)
    sd = robust.mad(negative)
    if sd == 0:
        sd = np.finfo('float64').eps
    return norm.sf(total, loc=2 * mu, scale=2 * sd)


def _pval_neg_ecdf(meth, unmeth, negative):
    """ empirical background: one minus the ECDF of negative controls at the brighter channel. """
    func = ECDF(negative[~np.isnan(negative)])
    return 1 - np.maximum(func(meth), func(unmeth))


def compute_detection_pvalues(matrix, method='minfi'):
    """Estimates, per (probe, sample), the p-value that the probe's signal is indistinguishable
    from background. Lower means a more confident detection.

    Arguments:
        matrix {IntensityMatrix} -- must carry negative control intensities.

    Keyword Arguments:
        method {string} -- 'minfi' (default): 1 - Phi(meth + unmeth; 2*median, 2*MAD of negative controls)
            'negative_ecdf': 1 - max(ECDF(meth), ECDF(unmeth)) using the negative control ECDF.

    Each sample's column uses only that sample's own controls, so results don't depend on
    which or how many samples are processed together. NaN intensities give NaN p-values.

    Returns:
        [DetectionPValueMatrix] -- aligned with the intensity matrix.
    """
    if method not in DETECTION_METHODS:
        raise ValueError(f"method must be one of {DETECTION_METHODS}; you said {method}")
    if matrix.negative_controls is None or matrix.negative_controls.empty:
        raise ValueError("Detection p-values need negative control intensities; none were loaded with this matrix.")

    pvals = {}
    for sample in progress(matrix.samples, desc="Detection p-values", logger=LOGGER):
        meth = matrix.meth[sample].to_numpy(dtype='float64')
        unmeth = matrix.unmeth[sample].to_numpy(dtype='float64')
        negative = matrix.negative_controls[sample].to_numpy(dtype='float64')
        if np.isnan(negative).all():
            raise ValueError(f"Sample {sample} has no negative control intensities.")
        if method == 'minfi':
            pval = _pval_minfi(meth + unmeth, negative)
        else:
            pval = _pval_neg_ecdf(meth, unmeth, negative)
        pvals[sample] = np.clip(pval, 0, 1)

    detp = pd.DataFrame(pvals, index=matrix.probes, columns=matrix.samples)
    LOGGER.info(f"Computed detection p-values ({method}) for {detp.shape[0]} probes x {detp.shape[1]} samples")
    return DetectionPValueMatrix(detp)


def sample_failure_mask(detp, threshold=0.05):
    """Samples whose mean detection p-value across all probes is above threshold.
    A mean equal to the threshold passes.

    Returns:
        [set] -- failing sample ids.
    """
    check_threshold(threshold)
    means = _frame(detp).mean(axis=0)
    return set(means.index[means > threshold])


def probe_failure_mask(detp, threshold=0.01):
    """Probes that are not detected in every sample: a probe is kept only if its p-value is
    below threshold in all remaining samples. One p-value >= threshold (or NaN) excludes it.

    Returns:
        [set] -- failing probe ids.
    """
    check_threshold(threshold)
    df = _frame(detp)
    passed = (df < threshold).all(axis=1)
    return set(df.index[~passed])


class SampleQCResult():
    """ returned by drop_failed_samples: the three co-indexed tables after removal, and what was removed. """
    __slots__ = (
        'matrix',
        'detection',
        'meta_data',
        'failed',
        'mean_pvalues',
        'threshold',
    )

    def __init__(self, matrix, detection, meta_data, failed, mean_pvalues, threshold):
        self.matrix = matrix
        self.detection = detection
        self.meta_data = meta_data
        self.failed = failed
        self.mean_pvalues = mean_pvalues
        self.threshold = threshold

    def __repr__(self):
        return f'SampleQCResult({len(self.failed)} failed, {self.matrix.shape[1]} kept)'


def drop_failed_samples(matrix, detp, meta_data, threshold=0.05, id_column='Sample_ID'):
    """Removes samples failing sample_failure_mask from the intensity matrix, the detection
    p-value matrix and the sample meta data table together.

    Arguments:
        matrix {IntensityMatrix}
        detp {DetectionPValueMatrix} -- computed from matrix.
        meta_data {DataFrame} -- one row per matrix column, in column order.

    Raises:
        IndexMismatchError: if the three tables are not aligned on entry or exit.
        AllSamplesFailedError: if every sample fails.

    Returns:
        [SampleQCResult]
    """
    stage = 'sample detection QC'
    detp.check_aligned(matrix, stage)
    check_same_samples(matrix.samples, meta_data, stage, id_column=id_column)

    failed_set = sample_failure_mask(detp, threshold)
    failed = [sample for sample in matrix.samples if sample in failed_set]
    means = detp.sample_means()
    if len(failed) == len(matrix.samples):
        raise AllSamplesFailedError(stage, len(failed), threshold)
    if failed:
        LOGGER.warning(f"Removing {len(failed)} of {len(matrix.samples)} samples with mean detection p-value > {threshold}: "
            + ', '.join(f"{sample} ({means[sample]:.3f})" for sample in failed))
    else:
        LOGGER.info(f"All {len(matrix.samples)} samples passed detection QC (mean p-value <= {threshold})")

    matrix = matrix.drop_samples(failed)
    detp = detp.drop_samples(failed)
    meta_data = meta_data[~meta_data[id_column].isin(failed)].reset_index(drop=True)

    check_alignment(matrix.meth, detp.data_frame, stage)
    check_same_samples(matrix.samples, meta_data, stage, id_column=id_column)
    return SampleQCResult(matrix, detp, meta_data, failed, means, threshold)
