# Lib
import logging
from pathlib import Path
import pandas as pd
# App
from ..exceptions import MetadataJoinMismatchError
from ..utils import inner_join_data, read_table, write_table


__all__ = ['mean_beta', 'read_covariates', 'relevel', 'CohortAggregator']


LOGGER = logging.getLogger(__name__)


def mean_beta(beta):
    """mean beta value over all retained probes, one value per sample (NaNs skipped)"""
    return beta.mean(axis=0, skipna=True).rename('mean_beta')


def read_covariates(filepath, id_column='Sample_ID'):
    """Reads the clinical/exposure covariate table (csv, pickle or parquet) keyed by sample id."""
    df = read_table(filepath, index_col=None)
    if id_column not in df.columns:
        if df.index.name == id_column:
            df = df.reset_index()
        else:
            raise ValueError(f"Covariate table {Path(filepath).name} has no {id_column} column")
    if df[id_column].duplicated().any():
        duplicates = sorted(df.loc[df[id_column].duplicated(), id_column].astype(str).unique())
        raise ValueError(f"Covariate table lists these samples more than once: {duplicates}")
    df[id_column] = df[id_column].astype(str)
    return df


def relevel(frame, baselines):
    """Converts covariate columns to categoricals with an explicit baseline (reference) level first.

    Arguments:
        frame {DataFrame}
        baselines {dict} -- column name: baseline level. The remaining levels keep sorted order.

    Returns:
        [DataFrame] -- a copy; the input is not modified.
    """
    frame = frame.copy()
    for column, baseline in baselines.items():
        if column not in frame.columns:
            raise KeyError(f"relevel: no column {column}")
        levels = sorted(set(frame[column].dropna()) - {baseline}, key=str)
        if baseline not in set(frame[column].dropna()):
            raise ValueError(f"relevel: baseline {baseline!r} is not a level of {column}")
        frame[column] = pd.Categorical(frame[column], categories=[baseline] + levels)
    return frame


class CohortAggregator():
    """Reduces a filtered beta matrix to one summary value per sample and joins it with
    the sample sheet and the clinical/exposure covariates.

    Arguments:
        covariates {DataFrame} -- covariate table with an id column.

    Keyword Arguments:
        id_column {string} -- the sample id column in both tables (default: {'Sample_ID'})
        strict {bool} -- if True (default), any sample without covariates or covariate row without a
            sample raises MetadataJoinMismatchError. If False, they are logged and dropped.
    """

    def __init__(self, covariates, id_column='Sample_ID', strict=True):
        self.covariates = covariates
        self.id_column = id_column
        self.strict = strict

    def unmatched(self, sample_ids):
        """(samples with no covariate row, covariate rows with no sample)"""
        covariate_ids = list(self.covariates[self.id_column].astype(str))
        missing_metadata = [sample for sample in sample_ids if sample not in set(covariate_ids)]
        missing_samples = [sample for sample in covariate_ids if sample not in set(sample_ids)]
        return missing_metadata, missing_samples

    def aggregate(self, beta, meta_data=None):
        """
        Arguments:
            beta {DataFrame} -- filtered probe x sample beta values.
            meta_data {DataFrame} -- sample sheet meta data (optional), keyed by id_column.

        Returns:
            [DataFrame] -- one row per sample, in beta column order: id, sample sheet fields, covariates, mean_beta.
        """
        sample_ids = [str(sample) for sample in beta.columns]
        missing_metadata, missing_samples = self.unmatched(sample_ids)
        if missing_metadata or missing_samples:
            error = MetadataJoinMismatchError(missing_metadata, missing_samples)
            if self.strict:
                raise error
            LOGGER.warning(f"{error} -- keeping only matched samples")

        summary = mean_beta(beta).rename_axis(self.id_column).reset_index()
        summary[self.id_column] = summary[self.id_column].astype(str)
        if meta_data is not None:
            meta_data = meta_data.astype({self.id_column: str})
            summary = meta_data.merge(summary, on=self.id_column, how='right', suffixes=(False, False))
        covariates = self.covariates.drop(
            columns=[column for column in self.covariates.columns
                     if column != self.id_column and column in summary.columns])
        summary = inner_join_data(summary, covariates, left_on=self.id_column, right_on=self.id_column)
        columns = [column for column in summary.columns if column != 'mean_beta'] + ['mean_beta']
        LOGGER.info(f"Cohort summary: {len(summary)} samples x {len(columns) - 1} fields")
        return summary[columns]

    @staticmethod
    def export(summary, data_dir, file_stem='cohort_summary', file_format='csv'):
        """Saves the cohort summary table; returns the path."""
        return write_table(summary, data_dir, file_stem, file_format=file_format, index=False)
