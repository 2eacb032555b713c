# Lib
import logging
from pathlib import Path
import pandas as pd
# App
from ..exceptions import IndexMismatchError
from ..models import IntensityMatrix
from ..utils import read_table


__all__ = ['load_intensity_matrix', 'find_table']


LOGGER = logging.getLogger(__name__)

METH_STEM = 'meth_values'
UNMETH_STEM = 'unmeth_values'
CONTROL_STEM = 'negative_control_values'
PROBE_TYPE_STEM = 'probe_types'
TABLE_SUFFIXES = ('.pkl', '.parquet', '.csv', '.csv.gz')
PROBE_TYPE_COLUMNS = ('Infinium_Design_Type', 'probe_type', 'design_type')


def find_table(data_dir, file_stem, required=True):
    """Looks for <file_stem>.pkl|.parquet|.csv in data_dir (not recursive). Returns a Path or None."""
    for suffix in TABLE_SUFFIXES:
        filepath = Path(data_dir, f"{file_stem}{suffix}")
        if filepath.exists():
            return filepath
    if required:
        raise FileNotFoundError(f"Could not find {file_stem} ({', '.join(TABLE_SUFFIXES)}) in {data_dir}")
    return None


def _orient(df, sample_keys, name):
    """ matrices are probe x sample, but exports with more samples than probes may be stored transposed. """
    if set(df.columns) & sample_keys:
        return df
    if set(df.index.astype(str)) & sample_keys:
        LOGGER.info(f"{name}: samples found in rows; transposing to probes x samples")
        return df.transpose()
    raise ValueError(f"{name}: none of the columns or rows match a sample in the sample sheet")


def _read_probe_types(filepath):
    df = read_table(filepath)
    if isinstance(df, pd.Series):
        return df.astype(str)
    for column in PROBE_TYPE_COLUMNS:
        if column in df.columns:
            return df[column].astype(str)
    return df.iloc[:, 0].astype(str)


def load_intensity_matrix(sample_sheet, data_dir=None, meth_filepath=None, unmeth_filepath=None,
    controls_filepath=None, probe_types_filepath=None):
    """Builds an IntensityMatrix plus a sample meta data frame from tabular intensity exports.

    Arguments:
        sample_sheet {SampleSheet} -- defines the cohort, sample ids and column order.

    Keyword Arguments:
        data_dir -- where to look for meth_values / unmeth_values / negative_control_values / probe_types
            files, if explicit paths are not given. Defaults to the sample sheet's folder.
        meth_filepath, unmeth_filepath -- probe x sample raw intensities (pickle, parquet or csv).
        controls_filepath -- negative control intensities (control probe x sample). Optional.
        probe_types_filepath -- Infinium design type per probe. Optional.

    Matrix columns may be array ids (Sentrix_ID_Sentrix_Position) or sample ids; they are renamed to
    sample ids. Samples missing from the matrix, or columns missing from the sheet, are dropped with
    a warning.

    Returns:
        (IntensityMatrix, DataFrame) -- the matrix and the meta data table, one row per matrix column,
        in matrix column order.
    """
    data_dir = data_dir or sample_sheet.data_dir
    meth_filepath = meth_filepath or find_table(data_dir, METH_STEM)
    unmeth_filepath = unmeth_filepath or find_table(data_dir, UNMETH_STEM)
    if controls_filepath is None:
        controls_filepath = find_table(data_dir, CONTROL_STEM, required=False)
    if probe_types_filepath is None:
        probe_types_filepath = find_table(data_dir, PROBE_TYPE_STEM, required=False)

    samples = sample_sheet.get_samples()
    rename = {}
    for sample in samples:
        rename[sample.array_id] = sample.sample_id
        rename[sample.sample_id] = sample.sample_id
    sample_keys = set(rename)

    LOGGER.info(f"Reading intensities: {Path(meth_filepath).name}, {Path(unmeth_filepath).name}")
    meth = _orient(read_table(meth_filepath), sample_keys, 'meth').rename(columns=rename)
    unmeth = _orient(read_table(unmeth_filepath), sample_keys, 'unmeth').rename(columns=rename)

    found = set(meth.columns) & set(unmeth.columns)
    unknown = sorted((set(meth.columns) | set(unmeth.columns)) - set(rename.values()), key=str)
    if unknown:
        LOGGER.warning(f"Dropping {len(unknown)} matrix columns not in the sample sheet: {unknown}")
    kept_samples = [sample for sample in samples if sample.sample_id in found]
    missing = [sample.sample_id for sample in samples if sample.sample_id not in found]
    if missing:
        LOGGER.warning(f"{len(missing)} samples in the sample sheet have no intensity data: {missing}")
    if not kept_samples:
        raise ValueError("No sample in the sample sheet has intensity data.")
    columns = [sample.sample_id for sample in kept_samples]

    negative_controls = None
    if controls_filepath is not None:
        controls = _orient(read_table(controls_filepath), sample_keys, 'negative controls').rename(columns=rename)
        missing_controls = [column for column in columns if column not in controls.columns]
        if missing_controls:
            raise IndexMismatchError('load negative controls', samples=missing_controls,
                detail=f'{Path(controls_filepath).name} has no column for these samples')
        negative_controls = controls[columns].astype('float64')

    probe_types = _read_probe_types(probe_types_filepath) if probe_types_filepath is not None else None

    if set(unmeth.index) == set(meth.index):
        # same probes, possibly saved in a different order
        unmeth = unmeth.loc[meth.index]
    matrix = IntensityMatrix(
        meth[columns].astype('float64'),
        unmeth[columns].astype('float64'),
        negative_controls=negative_controls,
        probe_types=probe_types,
    )
    meta_frame = sample_sheet.build_meta_data(kept_samples)
    LOGGER.info(f"Loaded {matrix}")
    return matrix, meta_frame
