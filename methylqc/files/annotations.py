# Lib
import logging
from pathlib import Path
import numpy as np
import pandas as pd
# App
from ..models import ArrayType
from ..utils import get_file_object, reset_file


__all__ = ['ProbeAnnotation', 'SEX_CHROMOSOMES']


LOGGER = logging.getLogger(__name__)

SEX_CHROMOSOMES = ('X', 'Y')
ANNOTATION_COLUMNS = (
    'IlmnID',
    'CHR',
    'MAPINFO',
)
SNP_COLUMNS = {
    # name: (rs id column, minor allele frequency column)
    'Probe': ('Probe_rs', 'Probe_maf'),
    'CpG': ('CpG_rs', 'CpG_maf'),
    'SBE': ('SBE_rs', 'SBE_maf'),
}
DEFAULT_SNP_SITES = ('CpG', 'SBE')


def _normalize_chromosome(value):
    """ 'chrX', 'X', 23 and 24 all map to the plain chromosome name. """
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return None
    value = str(value).strip()
    if not value:
        return None
    if value.lower().startswith('chr'):
        value = value[3:]
    if value.endswith('.0'):
        value = value[:-2]
    return {'23': 'X', '24': 'Y'}.get(value, value.upper())


class ProbeAnnotation():
    """Provides an object interface to a probe annotation reference table: chromosome, position and
    SNP overlap for each probe on the array.

    Arguments:
        filepath_or_buffer {file-like} -- a CSV (optionally .gz) with an IlmnID column, CHR, MAPINFO and
            SNP columns: Probe_rs/CpG_rs/SBE_rs (+ *_maf), or a boolean `snp` column.
            Illumina manifest-style preamble rows before the IlmnID header are skipped.

    Keyword Arguments:
        array_type {ArrayType} -- the platform the annotation belongs to. Inferred from the probe count if omitted.
        release {string} -- annotation release name. Defaults to the file name.

    The release matters: probe sets and coordinates differ between releases, so a matrix processed
    against one release should not be filtered with another.
    """

    __data_frame = None

    def __init__(self, filepath_or_buffer, array_type=None, release=None):
        with get_file_object(filepath_or_buffer) as annotation_file:
            self.__data_frame = self.read_probes(annotation_file)
        if array_type is not None and not isinstance(array_type, ArrayType):
            array_type = ArrayType(array_type)
        self.array_type = array_type or ArrayType.from_probe_count(len(self.__data_frame))
        if self.array_type.num_probes and len(self.__data_frame) != self.array_type.num_probes:
            LOGGER.warning(f"Annotation lists {len(self.__data_frame)} probes; {self.array_type} arrays have {self.array_type.num_probes}")
        if release is None:
            release = getattr(filepath_or_buffer, 'name', filepath_or_buffer)
            release = Path(str(release)).name if release is not None else None
        self.release = release
        LOGGER.info(f"Loaded annotation {self.release}: {len(self.__data_frame)} probes ({self.array_type})")

    @property
    def data_frame(self):
        return self.__data_frame

    @property
    def probes(self):
        return self.__data_frame.index

    @staticmethod
    def seek_to_start(annotation_file):
        """ find the start of the data part of the annotation. first left-most column must be "IlmnID" to be found."""
        reset_file(annotation_file)

        current_pos = annotation_file.tell()
        header_line = annotation_file.readline()

        while not header_line.lstrip(b'"').startswith(b'IlmnID'):
            if not header_line: #EOF
                raise EOFError("The first (left-most) column in your annotation must contain 'IlmnID'. This defines the header row.")
            current_pos = annotation_file.tell()
            header_line = annotation_file.readline()

        annotation_file.seek(current_pos)

    def read_probes(self, annotation_file):
        self.seek_to_start(annotation_file)
        data_frame = pd.read_csv(
            annotation_file,
            dtype={'IlmnID': str, 'CHR': str},
            low_memory=False,
        )
        missing = [column for column in ANNOTATION_COLUMNS if column not in data_frame.columns and column != 'MAPINFO']
        if missing:
            raise ValueError(f"Annotation is missing required columns: {missing}")
        data_frame = data_frame.dropna(subset=['IlmnID'])
        # manifest-style files end with a [Controls] section; those rows are not locus probes.
        section_rows = np.flatnonzero(data_frame['IlmnID'].str.startswith('[').to_numpy())
        if section_rows.size:
            data_frame = data_frame.iloc[:section_rows[0]]
        data_frame = data_frame[~data_frame['IlmnID'].duplicated()].set_index('IlmnID').copy()
        data_frame['CHR'] = data_frame['CHR'].map(_normalize_chromosome)
        return data_frame

    def missing(self, probe_ids, column=None):
        """probe ids (in the order given) that have no row in this annotation.
        With `column`, probes whose row leaves that column blank count as missing too."""
        probe_ids = pd.Index(probe_ids)
        absent = ~probe_ids.isin(self.__data_frame.index)
        if column is not None:
            absent = absent | self.__data_frame[column].reindex(probe_ids).isna().to_numpy()
        return list(probe_ids[absent])

    def check_compatible(self, array_type):
        """Raises ValueError when this annotation was built for a different array (release) than `array_type`.
        CUSTOM on either side can't be checked and passes."""
        if ArrayType.CUSTOM in (self.array_type, array_type):
            LOGGER.debug(f"Skipping annotation release check ({self.array_type} annotation, {array_type} matrix)")
            return
        expected = array_type.annotation_release
        if self.array_type.annotation_release != expected:
            raise ValueError(
                f"Annotation {self.release} is for {self.array_type} arrays ({self.array_type.annotation_release}); "
                f"the intensity matrix is {array_type} ({expected})")

    def chromosome(self, probe_ids):
        """chromosome per probe; None where the probe is missing or has no CHR."""
        return self.__data_frame['CHR'].reindex(pd.Index(probe_ids))

    def is_sex_chromosome(self, probe_ids, sex_chromosomes=SEX_CHROMOSOMES):
        """boolean Series over probe_ids. Probes without a chromosome are False here; callers must check .missing(probe_ids, 'CHR')."""
        chromosomes = self.chromosome(probe_ids)
        return chromosomes.isin(sex_chromosomes)

    def is_snp(self, probe_ids, sites=DEFAULT_SNP_SITES, maf=0.0):
        """boolean Series over probe_ids: True where a SNP with minor allele frequency of at least `maf` sits at one of `sites`.

        sites -- any of 'Probe' (anywhere in the probe body), 'CpG' (the interrogated CpG) and 'SBE'
            (single base extension site). Matches minfi's dropLociWithSnps defaults of CpG+SBE, maf=0.
        A listed SNP whose MAF is blank or unreadable is flagged whatever the cutoff.
        If the annotation has a boolean `snp` column instead of rs columns, that is used as-is.
        """
        probe_ids = pd.Index(probe_ids)
        df = self.__data_frame.reindex(probe_ids)
        flagged = pd.Series(False, index=probe_ids)
        rs_columns = [SNP_COLUMNS[site][0] for site in sites if site in SNP_COLUMNS]
        if not any(column in df.columns for column in rs_columns):
            if 'snp' in df.columns:
                return df['snp'].fillna(False).astype(bool)
            raise ValueError(f"Annotation has no SNP columns: expected one of {rs_columns} or 'snp'")
        for site in sites:
            if site not in SNP_COLUMNS:
                raise ValueError(f"Unknown SNP site {site}; choose from {list(SNP_COLUMNS)}")
            rs_column, maf_column = SNP_COLUMNS[site]
            if rs_column not in df.columns:
                LOGGER.warning(f"Annotation has no {rs_column} column; skipping {site} SNPs")
                continue
            has_snp = df[rs_column].notna() & (df[rs_column].astype(str).str.strip() != '')
            if maf_column in df.columns:
                # maf can be a ';' separated list when several SNPs overlap; any one above the cutoff counts.
                tokens = df[maf_column].reset_index(drop=True).astype(str).str.split(';').explode()
                max_maf = pd.to_numeric(tokens.str.strip(), errors='coerce').groupby(level=0).max().to_numpy()
                has_snp = has_snp & (np.isnan(max_maf) | (max_maf >= maf))
            flagged = flagged | has_snp
        return flagged
