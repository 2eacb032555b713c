# Lib
import gzip
import pytest
# App
from methylqc.files import ProbeAnnotation
from methylqc.models import ArrayType


MANIFEST_STYLE = """Illumina, Inc.,,,,,,
[Heading],,,,,,
Descriptor File Name,EPIC-annotation.csv,,,,,
[Assay],,,,,,
IlmnID,CHR,MAPINFO,CpG_rs,CpG_maf,SBE_rs,Probe_rs
cg00000001,chr1,100,,,,
cg00000002,chrX,200,,,,
cg00000003,Y,300,,,,
cg00000004,23,400,,,,
cg00000005,2,500,rs1;rs2,0.01;0.2,,
cg00000006,2,600,rs3,0.01,,
cg00000007,3,700,,,rs4,
cg00000008,3,800,,,,rs5
cg00000008,3,800,,,,rs5
[Controls],,,,,,
21630339,STAINING,Red,,,,
"""


@pytest.fixture
def annotation(tmp_path):
    path = tmp_path.joinpath('EPIC-annotation.csv')
    path.write_text(MANIFEST_STYLE)
    return ProbeAnnotation(path)


class TestProbeAnnotation():

    def test_skips_preamble_controls_and_duplicates(self, annotation):
        assert list(annotation.probes) == [f'cg0000000{i}' for i in range(1, 9)]
        assert annotation.release == 'EPIC-annotation.csv'
        assert annotation.array_type == ArrayType.CUSTOM

    def test_reads_gzip(self, tmp_path):
        path = tmp_path.joinpath('annotation.csv.gz')
        with gzip.open(path, 'wt') as outfile:
            outfile.write(MANIFEST_STYLE)
        annotation = ProbeAnnotation(path, array_type='epic', release='ilm10b4')
        assert len(annotation.probes) == 8
        assert annotation.array_type == ArrayType.ILLUMINA_EPIC
        assert annotation.release == 'ilm10b4'

    def test_chromosome_names_are_normalized(self, annotation):
        chromosomes = annotation.chromosome(['cg00000001', 'cg00000002', 'cg00000003', 'cg00000004'])
        assert list(chromosomes) == ['1', 'X', 'Y', 'X']

    def test_sex_chromosome_flags(self, annotation):
        flags = annotation.is_sex_chromosome(['cg00000001', 'cg00000002', 'cg00000003', 'cg99999999'])
        assert list(flags) == [False, True, True, False]

    def test_missing(self, annotation):
        assert annotation.missing(['cg99999999', 'cg00000001', 'cg88888888']) == ['cg99999999', 'cg88888888']

    def test_snp_default_sites(self, annotation):
        flags = annotation.is_snp([f'cg0000000{i}' for i in range(1, 9)])
        # CpG and SBE sites count; a SNP elsewhere in the probe body does not
        assert list(flags) == [False, False, False, False, True, True, True, False]

    def test_snp_maf_cutoff(self, annotation):
        flags = annotation.is_snp(['cg00000005', 'cg00000006', 'cg00000007'], sites=('CpG',), maf=0.05)
        assert list(flags) == [True, False, False]

    def test_snp_probe_body(self, annotation):
        flags = annotation.is_snp(['cg00000007', 'cg00000008'], sites=('Probe',))
        assert list(flags) == [False, True]

    def test_boolean_snp_column(self, tmp_path):
        path = tmp_path.joinpath('annotation.csv')
        path.write_text("IlmnID,CHR,snp\ncg1,1,True\ncg2,1,False\n")
        flags = ProbeAnnotation(path).is_snp(['cg1', 'cg2', 'cg3'])
        assert list(flags) == [True, False, False]

    def test_requires_ilmnid_header(self, tmp_path):
        path = tmp_path.joinpath('annotation.csv')
        path.write_text("probe,CHR\ncg1,1\n")
        with pytest.raises(EOFError):
            ProbeAnnotation(path)

    def test_requires_chr_column(self, tmp_path):
        path = tmp_path.joinpath('annotation.csv')
        path.write_text("IlmnID,MAPINFO\ncg1,1\n")
        with pytest.raises(ValueError):
            ProbeAnnotation(path)

    def test_blank_chromosome_counts_as_missing(self, tmp_path):
        path = tmp_path.joinpath('annotation.csv')
        path.write_text("IlmnID,CHR\ncg1,1\ncg2,\ncg3,X\ncg4, \n")
        annotation = ProbeAnnotation(path)
        assert annotation.missing(['cg1', 'cg2', 'cg3', 'cg4', 'cg5']) == ['cg5']
        assert annotation.missing(['cg1', 'cg2', 'cg3', 'cg4', 'cg5'], column='CHR') == ['cg2', 'cg4', 'cg5']

    def test_snp_maf_at_cutoff_is_flagged(self, annotation):
        flags = annotation.is_snp(['cg00000005', 'cg00000006'], sites=('CpG',), maf=0.01)
        assert list(flags) == [True, True]
        flags = annotation.is_snp(['cg00000005', 'cg00000006'], sites=('CpG',), maf=0.2)
        assert list(flags) == [True, False]

    def test_snp_with_unreadable_maf_is_flagged(self, tmp_path):
        path = tmp_path.joinpath('annotation.csv')
        path.write_text("IlmnID,CHR,CpG_rs,CpG_maf\ncg1,1,rs1,n/a\ncg2,1,rs2,0.001\ncg3,1,,\n")
        flags = ProbeAnnotation(path).is_snp(['cg1', 'cg2', 'cg3'], sites=('CpG',), maf=0.05)
        assert list(flags) == [True, False, False]


class TestCheckCompatible():

    def test_same_release_passes(self, tmp_path):
        path = tmp_path.joinpath('annotation.csv')
        path.write_text("IlmnID,CHR\ncg1,1\n")
        annotation = ProbeAnnotation(path, array_type='epic')
        annotation.check_compatible(ArrayType.ILLUMINA_EPIC)
        annotation.check_compatible(ArrayType.ILLUMINA_EPIC_PLUS)
        annotation.check_compatible(ArrayType.CUSTOM)

    def test_other_array_raises(self, tmp_path):
        path = tmp_path.joinpath('annotation.csv')
        path.write_text("IlmnID,CHR\ncg1,1\n")
        annotation = ProbeAnnotation(path, array_type='450k')
        with pytest.raises(ValueError) as excinfo:
            annotation.check_compatible(ArrayType.ILLUMINA_EPIC)
        assert 'IlluminaHumanMethylation450kanno' in str(excinfo.value)
