# Lib
import logging
import re

LOGGER = logging.getLogger(__name__)
REQUIRED = ['Sentrix_ID', 'Sentrix_Position', 'SentrixBarcode_A', 'SentrixPosition_A',
    'Sample_Group', 'Sample_Name', 'Sample_Plate', 'Cohort', 'Sample_Type']

class Sample():
    """Object representing a row in a SampleSheet file

Arguments:
    sentrix_id {string} -- The slide number of the processed array.
    sentrix_position {string} -- The position on the processed slide.

Keyword Arguments:
    addl_fields {} -- Additional metadata describing the sample.
    including experiment subject meta data:

        name (sample name)
        Cohort (study tag; prefixes the sample id)
        Sample_Type (tissue)

    array meta data:

        group
        plate

    The sample id is `{cohort}_{sentrix_id}_{sentrix_position}`, or just the array id when
    the sheet has no Cohort column. Matrix columns, meta data rows and exports all use it.
    """

    def __init__(self, sentrix_id, sentrix_position, **addl_fields):
        self.sentrix_id = sentrix_id
        self.sentrix_position = sentrix_position
        self.renamed_fields = {}

        # any OTHER sample_sheet columns are passed in exactly as they appear, if possible, and if column names exist.
        # these pass into the meta data frame, and any renamed fields are noted in a lookup.
        for field in addl_fields:
            if field not in REQUIRED:
                new_field_name = field.replace(' ','_')
                if len(field) == 0:
                    continue
                if field[0].isdigit():
                    new_field_name = field[1:]
                if not field.isalnum():
                    new_field_name = re.sub(r'\W+', '', new_field_name)
                setattr(self, new_field_name, addl_fields[field])
                self.renamed_fields[field] = new_field_name
        self.group = addl_fields.get('Sample_Group')
        self.name = addl_fields.get('Sample_Name')
        self.plate = addl_fields.get('Sample_Plate')
        self.cohort = addl_fields.get('Cohort') or None
        self.type = addl_fields.get('Sample_Type', 'Unknown')
        self.fields = {}
        self.fields.update(self.renamed_fields)
        self.fields.update({
            'Sentrix_ID': 'Sentrix_ID',
            'Sentrix_Position': 'Sentrix_Position', # these will be standardized here, regardless of sample_sheet variation names
            'Sample_Group': 'Sample_Group',
            'Sample_Name': 'Sample_Name',
            'Sample_Plate': 'Sample_Plate',
            'Sample_Type': 'Sample_Type',
            'Cohort': 'Cohort',
        })

    def __str__(self):
        return self.sample_id

    def __repr__(self):
        return f'Sample({self.sample_id!r}, group={self.group!r}, plate={self.plate!r})'

    @property
    def array_id(self):
        return f'{self.sentrix_id}_{self.sentrix_position}'

    @property
    def sample_id(self):
        if self.cohort:
            return f'{self.cohort}_{self.array_id}'
        return self.array_id
