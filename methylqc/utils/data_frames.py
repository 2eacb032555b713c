import logging
# App
from ..exceptions import IndexMismatchError


__all__ = ['inner_join_data', 'check_alignment', 'check_same_samples']


LOGGER = logging.getLogger(__name__)


def inner_join_data(left_df, right_df, left_on=None, right_on=None):
    """Helper function that performs an inner join on two data frames
    in a strict, consistent manner.

    Arguments:
        left_df {DataFrame} -- First data frame to merge.
        right_df {DataFrame} -- Second data frame to merge.

    Keyword Arguments:
        left_on {string} -- Column of the first data frame to use as the merge column.
            If not provided, the index will be used. (default: {None})
        right_on {string} -- Column of the first data frame to use as the merge column.
            If not provided, the index will be used. (default: {None})

    Returns:
        [DataFrame] -- A new data frame of the merged values.
    """
    left_index = left_on is None
    right_index = right_on is None

    return left_df.merge(
        right_df,
        how='inner',
        left_index=left_index,
        left_on=left_on,
        right_index=right_index,
        right_on=right_on,
        suffixes=(False, False),
    )


def _diff(left, right):
    left_set = set(left)
    right_set = set(right)
    return sorted(left_set ^ right_set, key=str)


def check_alignment(reference, other, stage):
    """Raises IndexMismatchError unless `other` has exactly the same index (probes)
    and columns (samples), in the same order, as `reference`.

    Both arguments are probe x sample DataFrames."""
    if reference.index.equals(other.index) and reference.columns.equals(other.columns):
        return
    probes = _diff(reference.index, other.index)
    samples = _diff(reference.columns, other.columns)
    detail = None
    if not probes and not samples:
        detail = 'same members in a different order'
    raise IndexMismatchError(stage, probes=probes, samples=samples, detail=detail)


def check_same_samples(sample_ids, meta_frame, stage, id_column='Sample_ID'):
    """the sample meta data table must list the matrix columns, in matrix column order."""
    meta_ids = list(meta_frame[id_column])
    if list(sample_ids) == meta_ids:
        return
    samples = _diff(sample_ids, meta_ids)
    detail = None if samples else 'sample meta data rows are not in matrix column order'
    raise IndexMismatchError(stage, samples=samples, detail=detail)
