# Lib
import logging
import numpy as np
import pandas as pd
from scipy.stats import rankdata
# App
from .postprocess import build_derived_values
from ..utils import check_alignment


__all__ = ['quantile_normalize', 'normalize', 'warn_if_multiple_tissues']


LOGGER = logging.getLogger(__name__)


def _grid(size):
    return np.linspace(0, 1, size) if size > 1 else np.zeros(1)


def _resample(sorted_values, size):
    """ sorted values stretched or squeezed onto `size` evenly spaced quantiles. """
    if len(sorted_values) == size:
        return sorted_values
    if len(sorted_values) == 1:
        return np.repeat(sorted_values, size)
    return np.interp(_grid(size), _grid(len(sorted_values)), sorted_values)


def quantile_normalize(frame):
    """Quantile normalization across the columns (samples) of a probe x sample frame.

    Each column is sorted, the sorted columns are averaged rank by rank into a reference
    distribution, and every value is replaced by the reference value at its rank.
    Tied values get the mean of the reference over their block of ranks.
    NaNs stay NaN and are left out; columns with fewer observed values use the reference
    interpolated to their length.

    Returns:
        [DataFrame] -- same index and columns as the input, in the same order.
    """
    values = frame.to_numpy(dtype='float64')
    n_rows, n_cols = values.shape
    out = np.full_like(values, np.nan)
    if n_rows == 0 or n_cols == 0:
        return pd.DataFrame(out, index=frame.index, columns=frame.columns)

    observed = [~np.isnan(values[:, j]) for j in range(n_cols)]
    longest = max(int(mask.sum()) for mask in observed)
    if longest == 0:
        return pd.DataFrame(out, index=frame.index, columns=frame.columns)

    sorted_columns = [
        _resample(np.sort(values[mask, j]), longest)
        for j, mask in enumerate(observed)
        if mask.any()
    ]
    reference = np.mean(sorted_columns, axis=0)

    for j, mask in enumerate(observed):
        column = values[mask, j]
        size = len(column)
        if size == 0:
            continue
        target = _resample(reference, size)
        cumulative = np.concatenate([[0.0], np.cumsum(target)])
        first = rankdata(column, method='min').astype(int)
        last = rankdata(column, method='max').astype(int)
        out[mask, j] = (cumulative[last] - cumulative[first - 1]) / (last - first + 1)

    return pd.DataFrame(out, index=frame.index, columns=frame.columns)


def _strata(matrix, stratify_by_type):
    if not stratify_by_type or matrix.probe_types is None:
        return [matrix.probes]
    probe_types = matrix.probe_types.fillna('unknown')
    groups = [probe_types.index[probe_types == probe_type] for probe_type in sorted(probe_types.unique())]
    LOGGER.info("Quantile normalizing by probe type: " + ', '.join(
        f"{probe_type}={len(group)}" for probe_type, group in zip(sorted(probe_types.unique()), groups)))
    return groups


def normalize(matrix, stratify_by_type=True, offset=100):
    """Quantile normalizes the methylated and unmethylated intensities across samples.

    Arguments:
        matrix {IntensityMatrix} -- samples that passed detection QC.

    Keyword Arguments:
        stratify_by_type {bool} -- normalize Infinium I and II probes separately, when the matrix
            has probe types. (default: {True})
        offset {int} -- beta value offset. (default: {100}, minfi)

    Assumes most probes are not differentially methylated between samples, which holds within one
    tissue. Don't use it for multi-tissue cohorts.

    Returns:
        (raw, normalized) -- two DerivedValueMatrix objects, before and after normalization, with
        exactly the probe and sample order of the input matrix.
    """
    raw = build_derived_values(matrix.meth, matrix.unmeth, offset=offset, stage='raw values')

    meth_parts = []
    unmeth_parts = []
    for probes in _strata(matrix, stratify_by_type):
        meth_parts.append(quantile_normalize(matrix.meth.loc[probes]))
        unmeth_parts.append(quantile_normalize(matrix.unmeth.loc[probes]))
    meth = pd.concat(meth_parts).reindex(matrix.probes)
    unmeth = pd.concat(unmeth_parts).reindex(matrix.probes)

    normalized = build_derived_values(meth, unmeth, offset=offset, stage='quantile normalization')
    check_alignment(raw.beta, normalized.beta, 'quantile normalization')
    LOGGER.info(f"Quantile normalized {matrix.shape[0]} probes x {matrix.shape[1]} samples")
    return raw, normalized


def warn_if_multiple_tissues(meta_data, column='Sample_Type'):
    """ quantile normalization assumes one tissue; log a warning when the sample sheet says otherwise. """
    if column not in meta_data.columns:
        return False
    tissues = set(meta_data[column].dropna().astype(str)) - {'', 'Unknown'}
    if len(tissues) > 1:
        LOGGER.warning(f"Quantile normalization assumes a single tissue, but {column} lists {sorted(tissues)}")
        return True
    return False
