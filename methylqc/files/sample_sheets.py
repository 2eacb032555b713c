# Lib
import logging
from pathlib import Path, PurePath
import pandas as pd
# App
from ..models import Sample
from ..utils import get_file_object, reset_file


__all__ = ['SampleSheet', 'get_sample_sheet', 'find_sample_sheet']


LOGGER = logging.getLogger(__name__)

REQUIRED_HEADERS = {'Sample_Name', 'Sentrix_ID', 'Sentrix_Position'}
ALT_REQUIRED_HEADERS = {'Sample_Name', 'SentrixBarcode_A', 'SentrixPosition_A'}


def get_sample_sheet(dir_path, filepath=None):
    """Generates a SampleSheet instance for a given directory of processed data.

    Arguments:
        dir_path {string or path-like} -- Base directory of the sample sheet and associated intensity files.

    Keyword Arguments:
        filepath {string or path-like} -- path of the sample sheet file if provided, otherwise
            one will try to be found. (default: {None})

    Returns:
        [SampleSheet] -- A SampleSheet instance.
    """
    LOGGER.debug('Reading sample sheet')

    if not filepath:
        filepath = find_sample_sheet(dir_path)

    data_dir = PurePath(filepath).parent
    return SampleSheet(filepath, data_dir)


def find_sample_sheet(dir_path):
    """Find sample sheet file for Illumina methylation array.

    Notes:
        looks for csv files in {dir_path}.
        If more than one csv file found, returns the one
        that has "sample_sheet" or 'samplesheet' in its name.
        Otherwise, raises error.

    Arguments:
        dir_path {string or path-like} -- Base directory of the sample sheet and associated intensity files.

    Raises:
        FileNotFoundError: no sample sheet, or dir_path is not a directory.
        Exception: more than one candidate sample sheet.

    Returns:
        [string] -- Path to sample sheet in base directory
    """
    LOGGER.debug('Searching for sample_sheet in %s', dir_path)

    sample_dir = Path(dir_path)

    if not sample_dir.is_dir():
        raise FileNotFoundError(f'{dir_path} is not a valid directory path')

    csv_files = list(sample_dir.rglob('*.csv'))
    candidates = [
        csv_file for csv_file in csv_files
        if SampleSheet.is_valid_csv(csv_file)
        and SampleSheet.is_sample_sheet(csv_file)
        and 'sample' in str(csv_file.name).lower()
        and 'sheet' in str(csv_file.name).lower()
        and not csv_file.stem.lower().endswith('meta_data')  # exported by run_pipeline
    ]

    num_candidates = len(candidates)

    if num_candidates == 0:
        errors = [
            {'name': csv_file.name,
            'pandas_can_open': SampleSheet.is_valid_csv(csv_file)}
            for csv_file in csv_files
        ]
        if errors == []:
            raise FileNotFoundError(f"Could not find sample sheet.")
        else:
            raise FileNotFoundError(f"Could not find sample sheet. (candidate files: {errors})")

    if num_candidates > 1:
        name_matched = [
            file_name
            for file_name in candidates
            if 'sample_sheet' in file_name.stem.lower()
            or 'samplesheet' in file_name.stem.lower()
        ]
        if len(name_matched) == 1:
            candidates = name_matched
        else:
            raise Exception(f"Too many sample sheets in this directory. Move or rename redundant ones, or pass sample_sheet_filepath. (candidate files: {candidates})")

    sample_sheet_file = candidates[0]
    LOGGER.debug('Found sample sheet file: %s', sample_sheet_file)
    return sample_sheet_file


class SampleSheet():
    """Validates and parses an Illumina sample sheet file.

    Arguments:
        filepath_or_buffer {file-like} -- the sample sheet file to parse.
        data_dir {string or path-like} -- Base directory of the sample sheet and associated intensity files.

    Raises:
        ValueError: The sample sheet is not formatted properly.
    """

    __data_frame = None

    def __init__(self, filepath_or_buffer, data_dir):
        self.__samples = []
        self.fields = {}
        self.renamed_fields = {}

        self.data_dir = data_dir
        self.headers = []
        self.alt_headers = None

        with get_file_object(filepath_or_buffer) as sample_sheet_file:
            self.read(sample_sheet_file)

    @staticmethod
    def is_sample_sheet(filepath_or_buffer):
        """Checks if the provided file-like object is a valid sample sheet.

        Method:
            If any of the first 25 rows contains Sample_Name, Sentrix_ID and Sentrix_Position, it passes.
            Alternatively, SentrixBarcode_A and SentrixPosition_A may replace the Sentrix columns.

        Arguments:
            filepath_or_buffer {{file-like}} -- the sample sheet file to parse.

        Returns:
            [boolean] -- Whether the file is a valid sample sheet.
        """
        data_frame = pd.read_csv(filepath_or_buffer, header=None, nrows=25,
            dtype=str, keep_default_na=False)

        reset_file(filepath_or_buffer)

        for _, row in data_frame.iterrows():
            if REQUIRED_HEADERS.issubset(row.values):
                return True
            elif ALT_REQUIRED_HEADERS.issubset(row.values):
                return True

        return False

    @staticmethod
    def is_valid_csv(filepath_or_buffer):
        try:
            pd.read_csv(filepath_or_buffer, header=None, nrows=25)
            return True
        except Exception:
            return False
        finally:
            reset_file(filepath_or_buffer)

    def get_samples(self):
        """Retrieves Sample objects from the processed sample sheet rows,
        building them if necessary."""
        if not self.__samples:
            self.build_samples()
        return self.__samples

    def get_sample(self, sample_id):
        """ returns the one sample matching this sample id or sample name """
        candidates = [
            sample
            for sample in self.get_samples()
            if sample_id in (sample.sample_id, sample.name)
        ]

        num_candidates = len(candidates)
        if num_candidates != 1:
            raise ValueError(f'Expected sample with id `{sample_id}`. Found {num_candidates}')

        return candidates[0]

    def build_samples(self):
        """Builds Sample objects from the processed sample sheet rows. Rows without a sentrix id/position are skipped."""

        self.__samples = []

        for _index, row in self.__data_frame.iterrows():
            sentrix_id = row['Sentrix_ID'].strip()
            sentrix_position = row['Sentrix_Position'].strip()

            if not (sentrix_id and sentrix_position):
                continue

            fields = {key: value for key, value in row.items() if key not in ('Sentrix_ID', 'Sentrix_Position')}
            sample = Sample(
                sentrix_id=sentrix_id,
                sentrix_position=sentrix_position,
                **fields,
            )
            if sample.renamed_fields != {}:
                self.renamed_fields.update(sample.renamed_fields)
            self.fields.update(sample.fields)
            self.__samples.append(sample)

        sample_ids = [sample.sample_id for sample in self.__samples]
        if len(set(sample_ids)) != len(sample_ids):
            duplicates = sorted({_id for _id in sample_ids if sample_ids.count(_id) > 1})
            raise ValueError(f"Sample ids must be unique; these appear more than once: {duplicates}")

    def contains_column(self, column_name):
        """ helper function to determine if sample_sheet contains a specific column, such as Cohort.
        SampleSheet must already have __data_frame in it."""
        if column_name in self.__data_frame:
            return True
        return False

    def read(self, sample_sheet_file):
        """Validates and reads a sample sheet file, building a DataFrame from the parsed rows.

        Method:
            It autodetects whether a sample sheet is formatted in Infinium MethylationEPIC style, or without the headers.
            See https://support.illumina.com/downloads/infinium-methylationepic-sample-sheet.html for more information about file formatting.

            Format 1: header is not the first row. Header begins on the row after [Data] appears in first column.
            Format 2: First row of file contains header data.

        Dev notes:
            It loads whole file using pandas.read_csv to better handle whitespace/matching on headers."""

        LOGGER.debug('Parsing sample_sheet')

        if not self.is_sample_sheet(sample_sheet_file):
            columns = ', '.join(sorted(REQUIRED_HEADERS))
            alt_columns = ', '.join(sorted(ALT_REQUIRED_HEADERS))
            raise ValueError(f'Cannot find header with values: {columns} or {alt_columns}')

        # this puts all the sample_sheet header rows into SampleSheet.headers list.
        rows_to_scan = 100
        cur_line = sample_sheet_file.readline()
        while cur_line and not cur_line.startswith(b'[Data]'):
            if rows_to_scan == 0:
                break
            raw_line = cur_line.decode()
            if raw_line:
                self.headers.append(raw_line)
            cur_line = sample_sheet_file.readline()
            rows_to_scan -= 1
        if not cur_line:
            # no [Data] section; there was no preamble either.
            self.headers = []
        reset_file(sample_sheet_file)

        test_sheet = pd.read_csv(
            sample_sheet_file,
            header=None,  # this ensures row[0] included as data -- [this is for looking for the header]
            keep_default_na=False,
            skip_blank_lines=True,
            dtype=str,
        )
        test_sheet = test_sheet.to_dict('records')  # list of dicts
        rows_to_scan = 25
        start_row = None
        for idx, row in enumerate(test_sheet):
            if rows_to_scan == 0:
                break
            if '[Data]' in row.values():
                # Format 1 parsing: assume the header begins right after [Data]
                start_row = idx + 1
                self.alt_headers = ALT_REQUIRED_HEADERS.issubset(test_sheet[idx + 1].values())
                break
            if REQUIRED_HEADERS.issubset(row.values()):
                # Format 2 parsing: no [Data] and probably first row is header.
                start_row = idx
                self.alt_headers = False
                break
            if ALT_REQUIRED_HEADERS.issubset(row.values()):
                start_row = idx
                self.alt_headers = True
                break
            rows_to_scan -= 1
        if start_row is None:
            raise ValueError('Sample sheet is invalid. Could not find the header row within the first 25 rows.')

        reset_file(sample_sheet_file)
        self.__data_frame = pd.read_csv(
            sample_sheet_file,
            header=start_row,
            keep_default_na=False,
            skip_blank_lines=True,
            dtype=str,
        )
        reset_file(sample_sheet_file)

        # rename ALT columns to standard columns in the sample_sheet dataframe now.
        if self.alt_headers:
            self.rename_alt_headers()

    def rename_alt_headers(self):
        columns = {'SentrixBarcode_A':'Sentrix_ID','SentrixPosition_A':'Sentrix_Position'}
        self.__data_frame = self.__data_frame.rename(columns=columns)
        LOGGER.info(f"Renamed SampleSheet columns {columns}")

    def build_meta_data(self, samples=None):
        """Takes a list of samples and returns a data_frame with one row per sample, in the order given.
        Sample_ID is the first column and matches the columns of the intensity and beta matrices."""
        if not samples:
            samples = self.get_samples()
        field_classattr_lookup = {
            'Sentrix_ID': 'sentrix_id',
            'Sentrix_Position': 'sentrix_position',
            'Sample_Group': 'group',
            'Sample_Name': 'name',
            'Sample_Plate': 'plate',
            'Sample_Type': 'type',
            'Cohort': 'cohort',
        }
        # sample_sheet.fields is a complete mapping of original and renamed_fields
        cols = ['Sample_ID'] + list(dict.fromkeys(self.fields.values()))
        rows = []
        for sample in samples:
            row = {'Sample_ID': sample.sample_id}
            for field, column in self.fields.items():
                if column in field_classattr_lookup:
                    row[column] = getattr(sample, field_classattr_lookup[column])
                elif field in self.renamed_fields:
                    row[column] = getattr(sample, self.renamed_fields[field], None)
                else:
                    LOGGER.info(f"extra column: {field} ignored")
            rows.append(row)
        return pd.DataFrame(rows, columns=cols)
