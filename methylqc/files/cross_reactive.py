# Lib
import logging
from pathlib import PurePath
import re
import pandas as pd


__all__ = ['read_cross_reactive_probes']


LOGGER = logging.getLogger(__name__)

PROBE_ID_COLUMNS = ('IlmnID', 'ProbeID', 'TargetID', 'probe', 'x')
# cg/ch/rs locus ids, e.g. cg00000029, ch.1.1234567R, rs10796216
PROBE_ID_PATTERN = re.compile(r'^(cg\d+|ch\.[\w.]+|rs\d+)')


def read_cross_reactive_probes(filepath):
    """Reads a list of probes known to hybridize to more than one genomic location.

    The file has one probe id per row: either a csv with a header naming one of
    {IlmnID, ProbeID, TargetID, probe, x} (else the first column is used), or a plain
    .txt list. A csv whose first row is already a probe id is read without a header.
    Ids are stripped of whitespace and de-duplicated; order is kept.

    Returns:
        [list] -- probe ids, to be exact-matched against the matrix index.
    """
    suffixes = [s.lower() for s in PurePath(filepath).suffixes if s.lower() != '.gz']
    if suffixes and suffixes[-1] == '.txt':
        df = pd.read_csv(filepath, header=None, dtype=str, names=['probe'])
        if len(df) and df['probe'].iloc[0].strip() in PROBE_ID_COLUMNS:
            df = df.iloc[1:]
        probes = df['probe']
    else:
        df = pd.read_csv(filepath, dtype=str)
        first = str(df.columns[0]).strip()
        if first not in PROBE_ID_COLUMNS and PROBE_ID_PATTERN.match(first):
            LOGGER.debug(f"{PurePath(filepath).name} has no header row")
            df = pd.read_csv(filepath, header=None, dtype=str)
        column = next((col for col in PROBE_ID_COLUMNS if col in df.columns), df.columns[0])
        probes = df[column]
    probes = probes.dropna().str.strip()
    probes = list(dict.fromkeys(probe for probe in probes if probe))
    LOGGER.info(f"Read {len(probes)} cross-reactive probes from {PurePath(filepath).name}")
    return probes
