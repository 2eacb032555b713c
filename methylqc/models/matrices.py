# Lib
import logging
import numpy as np
import pandas as pd
# App
from .arrays import ArrayType
from ..exceptions import IndexMismatchError
from ..utils import check_alignment


__all__ = ['IntensityMatrix', 'DetectionPValueMatrix', 'DerivedValueMatrix']


LOGGER = logging.getLogger(__name__)


def _keep_order(index, ids):
    """ subset of `index` found in ids, in index order. """
    ids = set(ids)
    return [item for item in index if item in ids]


class IntensityMatrix():
    """Raw methylated and unmethylated intensities for a cohort: probes in rows, samples in columns.

    Arguments:
        meth {DataFrame} -- methylated channel intensities (probe x sample).
        unmeth {DataFrame} -- unmethylated channel intensities, same index and columns as meth.

    Keyword Arguments:
        negative_controls {DataFrame} -- negative control probe intensities (control probe x sample).
            Columns must match the intensity columns. Needed for detection p-values.
        probe_types {Series} -- Infinium design type ('I' or 'II') per probe, used to stratify
            quantile normalization. Probes absent from the series are treated as unknown type.

    Raises:
        IndexMismatchError: if meth, unmeth and the control table are not co-aligned.

    All operations return new objects; the frames passed in are never modified.
    """

    def __init__(self, meth, unmeth, negative_controls=None, probe_types=None):
        check_alignment(meth, unmeth, 'IntensityMatrix')
        if meth.index.has_duplicates:
            raise IndexMismatchError('IntensityMatrix', probes=meth.index[meth.index.duplicated()].unique(),
                detail='duplicate probe ids')
        if meth.columns.has_duplicates:
            raise IndexMismatchError('IntensityMatrix', samples=meth.columns[meth.columns.duplicated()].unique(),
                detail='duplicate sample ids')
        if negative_controls is not None and not negative_controls.columns.equals(meth.columns):
            missing = set(meth.columns) ^ set(negative_controls.columns)
            raise IndexMismatchError('IntensityMatrix negative controls', samples=sorted(missing, key=str),
                detail=None if missing else 'control columns are in a different order')
        self.__meth = meth
        self.__unmeth = unmeth
        self.__negative_controls = negative_controls
        if probe_types is not None:
            probe_types = probe_types.reindex(meth.index)
        self.__probe_types = probe_types

    @property
    def meth(self):
        return self.__meth

    @property
    def unmeth(self):
        return self.__unmeth

    @property
    def negative_controls(self):
        return self.__negative_controls

    @property
    def probe_types(self):
        return self.__probe_types

    @property
    def probes(self):
        return self.__meth.index

    @property
    def samples(self):
        return self.__meth.columns

    @property
    def shape(self):
        return self.__meth.shape

    @property
    def array_type(self):
        return ArrayType.from_probe_count(len(self.probes))

    def __repr__(self):
        return f'IntensityMatrix({self.shape[0]} probes x {self.shape[1]} samples)'

    def drop_samples(self, sample_ids):
        """Returns a new matrix without these samples; the negative control table loses the same columns."""
        keep = [sample for sample in self.samples if sample not in set(sample_ids)]
        negative_controls = self.__negative_controls[keep] if self.__negative_controls is not None else None
        return IntensityMatrix(
            self.__meth[keep],
            self.__unmeth[keep],
            negative_controls=negative_controls,
            probe_types=self.__probe_types,
        )

    def select_probes(self, probe_ids):
        """Returns a new matrix with only these probes, kept in their current order."""
        keep = _keep_order(self.probes, probe_ids)
        probe_types = self.__probe_types.loc[keep] if self.__probe_types is not None else None
        return IntensityMatrix(
            self.__meth.loc[keep],
            self.__unmeth.loc[keep],
            negative_controls=self.__negative_controls,
            probe_types=probe_types,
        )


class DetectionPValueMatrix():
    """Per (probe, sample) detection p-values. Lower is more confident.

    Arguments:
        data_frame {DataFrame} -- probe x sample p-values in [0, 1]. NaN is allowed for probes
            with no signal and counts as failing.
    """

    def __init__(self, data_frame):
        values = data_frame.to_numpy(dtype='float64')
        finite = values[~np.isnan(values)]
        if finite.size and (finite.min() < 0 or finite.max() > 1):
            raise ValueError(f"detection p-values must be in [0, 1]; found range {finite.min()} to {finite.max()}")
        self.__data_frame = data_frame

    @property
    def data_frame(self):
        return self.__data_frame

    @property
    def probes(self):
        return self.__data_frame.index

    @property
    def samples(self):
        return self.__data_frame.columns

    @property
    def shape(self):
        return self.__data_frame.shape

    def __repr__(self):
        return f'DetectionPValueMatrix({self.shape[0]} probes x {self.shape[1]} samples)'

    def sample_means(self):
        """mean p-value across all probes, per sample"""
        return self.__data_frame.mean(axis=0)

    def drop_samples(self, sample_ids):
        keep = [sample for sample in self.samples if sample not in set(sample_ids)]
        return DetectionPValueMatrix(self.__data_frame[keep])

    def select_probes(self, probe_ids):
        return DetectionPValueMatrix(self.__data_frame.loc[_keep_order(self.probes, probe_ids)])

    def check_aligned(self, reference, stage):
        """reference is any probe x sample DataFrame, or an object with a .meth or .beta frame."""
        for attr in ('meth', 'beta'):
            if hasattr(reference, attr):
                reference = getattr(reference, attr)
                break
        check_alignment(reference, self.__data_frame, stage)


class DerivedValueMatrix():
    """Beta and M values for a (probe, sample) set, with the intensities they came from.

    Arguments:
        beta {DataFrame} -- fraction methylated, probe x sample.
        m_value {DataFrame} -- log2 ratio of methylated to unmethylated signal, same shape and order.

    Keyword Arguments:
        meth, unmeth {DataFrame} -- the intensities used to compute beta, if kept.
    """

    def __init__(self, beta, m_value, meth=None, unmeth=None):
        check_alignment(beta, m_value, 'DerivedValueMatrix')
        if meth is not None:
            check_alignment(beta, meth, 'DerivedValueMatrix meth')
        if unmeth is not None:
            check_alignment(beta, unmeth, 'DerivedValueMatrix unmeth')
        self.beta = beta
        self.m_value = m_value
        self.meth = meth
        self.unmeth = unmeth

    @property
    def probes(self):
        return self.beta.index

    @property
    def samples(self):
        return self.beta.columns

    @property
    def shape(self):
        return self.beta.shape

    def __repr__(self):
        return f'DerivedValueMatrix({self.shape[0]} probes x {self.shape[1]} samples)'

    def _subset(self, rows, columns):
        def take(df):
            return None if df is None else df.loc[rows, columns]
        return DerivedValueMatrix(take(self.beta), take(self.m_value), take(self.meth), take(self.unmeth))

    def select_probes(self, probe_ids):
        return self._subset(_keep_order(self.probes, probe_ids), list(self.samples))

    def drop_samples(self, sample_ids):
        keep = [sample for sample in self.samples if sample not in set(sample_ids)]
        return self._subset(list(self.probes), keep)
