# Lib
from enum import Enum, unique

import logging
LOGGER = logging.getLogger(__name__)

@unique
class ArrayType(Enum):
    """This class stores meta data about array types, such as numbers of probes of each type, and how to guess the array from the probes in an intensity matrix."""

    CUSTOM = 'custom'
    ILLUMINA_450K = '450k'
    ILLUMINA_EPIC = 'epic'
    ILLUMINA_EPIC_PLUS = 'epic+'

    def __str__(self):
        return self.value

    @classmethod
    def from_probe_count(cls, probe_count):
        """Determines array type using the number of cg/ch probes in a matrix or annotation table.
        Matrices that were already subset (e.g. in testing) come back as CUSTOM."""
        if probe_count == 868698:
            return cls.ILLUMINA_EPIC_PLUS

        if 480000 <= probe_count <= 486000:
            return cls.ILLUMINA_450K

        if 860000 <= probe_count <= 866000:
            return cls.ILLUMINA_EPIC

        LOGGER.info(f'Probe count ({probe_count}) does not match a known array; treating as custom')
        return cls.CUSTOM

    @property
    def num_probes(self):
        """Number of cg+ch probes listed in the platform annotation release."""
        probe_counts = {
            ArrayType.ILLUMINA_450K: 485577,
            ArrayType.ILLUMINA_EPIC: 865918,
            ArrayType.ILLUMINA_EPIC_PLUS: 868698,
        }
        return probe_counts.get(self)

    @property
    def annotation_release(self):
        """The annotation release this package's reference files are built against.
        Probe sets and coordinates differ between releases, so annotations for another release won't line up."""
        releases = {
            ArrayType.ILLUMINA_450K: 'IlluminaHumanMethylation450kanno.ilmn12.hg19',
            ArrayType.ILLUMINA_EPIC: 'IlluminaHumanMethylationEPICanno.ilm10b4.hg19',
            ArrayType.ILLUMINA_EPIC_PLUS: 'IlluminaHumanMethylationEPICanno.ilm10b4.hg19',
        }
        return releases.get(self)
