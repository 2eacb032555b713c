# Lib
from pathlib import Path
import numpy as np
import pandas as pd
import pytest
# App
from methylqc.models import IntensityMatrix, DetectionPValueMatrix


COHORT = 'A'
SENTRIX_ID = '200000000001'
POSITIONS = ['R01C01', 'R02C01', 'R03C01', 'R04C01']
ARRAY_IDS = [f'{SENTRIX_ID}_{position}' for position in POSITIONS]
SAMPLE_IDS = [f'{COHORT}_{array_id}' for array_id in ARRAY_IDS]
PROBES = [f'cg{i:08d}' for i in range(1, 13)]
CONTROLS = [f'ctl{i:02d}' for i in range(21)]


class Cohort():
    """ ids and file paths of the synthetic cohort written by the `cohort` fixture.

    probe roles:
        autosomal -- six good probes on chromosomes 1-6; the only ones left after all passes
        x_probe, y_probe -- sex chromosomes
        snp_probe -- CpG_rs is set
        cross_reactive_probe -- listed in cross_reactive.csv
        unannotated_probe -- has no row in the annotation
        low_signal_probe -- intensities near background in every sample
    sample roles:
        failed_sample -- the fourth sample; all intensities near background
    """
    array_ids = ARRAY_IDS
    sample_ids = SAMPLE_IDS
    probes = PROBES
    autosomal = PROBES[:6]
    x_probe = PROBES[6]
    y_probe = PROBES[7]
    snp_probe = PROBES[8]
    cross_reactive_probe = PROBES[9]
    unannotated_probe = PROBES[10]
    low_signal_probe = PROBES[11]
    failed_sample = SAMPLE_IDS[3]
    passing_samples = SAMPLE_IDS[:3]

    def __init__(self, data_dir, ref_dir):
        self.data_dir = data_dir
        self.ref_dir = ref_dir
        self.sample_sheet = Path(data_dir, 'sample_sheet.csv')
        self.annotation = Path(ref_dir, 'epic_annotation.csv')
        self.cross_reactive = Path(ref_dir, 'cross_reactive.csv')
        self.covariates = Path(ref_dir, 'covariates.csv')


def synthetic_intensities(columns=ARRAY_IDS):
    """ meth, unmeth, negative controls. Good probes total 2000-12000; background is ~200. """
    rng = np.random.default_rng(42)
    meth = pd.DataFrame(rng.uniform(1000, 6000, size=(len(PROBES), len(columns))), index=PROBES, columns=columns)
    unmeth = pd.DataFrame(rng.uniform(1000, 6000, size=(len(PROBES), len(columns))), index=PROBES, columns=columns)
    meth.loc[PROBES[11]] = 115.0
    unmeth.loc[PROBES[11]] = 115.0
    meth[columns[3]] = 60.0
    unmeth[columns[3]] = 60.0
    negative = pd.DataFrame(
        {column: np.linspace(80, 120, len(CONTROLS)) for column in columns},
        index=CONTROLS,
    )
    return meth, unmeth, negative


def write_annotation(filepath, probes=PROBES[:10] + PROBES[11:]):
    chromosomes = {PROBES[6]: 'X', PROBES[7]: 'Y'}
    rows = []
    for i, probe in enumerate(probes):
        rows.append({
            'IlmnID': probe,
            'CHR': chromosomes.get(probe, str(i % 6 + 1)),
            'MAPINFO': 10000 + i,
            'Probe_rs': '',
            'CpG_rs': 'rs123' if probe == PROBES[8] else '',
            'SBE_rs': '',
        })
    pd.DataFrame(rows).to_csv(filepath, index=False)
    return filepath


@pytest.fixture
def cohort(tmp_path):
    data_dir = tmp_path.joinpath('cohort_a')
    ref_dir = tmp_path.joinpath('reference')
    data_dir.mkdir()
    ref_dir.mkdir()
    cohort = Cohort(data_dir, ref_dir)

    pd.DataFrame({
        'Sample_Name': [f'subject{i}' for i in range(1, 5)],
        'Sentrix_ID': [SENTRIX_ID] * 4,
        'Sentrix_Position': POSITIONS,
        'Sample_Group': ['case', 'control', 'case', 'control'],
        'Sample_Type': ['Blood'] * 4,
        'Cohort': [COHORT] * 4,
    }).to_csv(cohort.sample_sheet, index=False)

    meth, unmeth, negative = synthetic_intensities()
    meth.to_csv(Path(data_dir, 'meth_values.csv'))
    unmeth.to_csv(Path(data_dir, 'unmeth_values.csv'))
    negative.to_csv(Path(data_dir, 'negative_control_values.csv'))
    pd.DataFrame(
        {'Infinium_Design_Type': ['I', 'II'] * 6},
        index=pd.Index(PROBES, name='IlmnID'),
    ).to_csv(Path(data_dir, 'probe_types.csv'))

    write_annotation(cohort.annotation)
    pd.DataFrame({'IlmnID': [PROBES[9], 'cg99999999']}).to_csv(cohort.cross_reactive, index=False)
    pd.DataFrame({
        'Sample_ID': SAMPLE_IDS,
        'age': [54, 61, 47, 70],
        'smoking': ['never', 'current', 'former', 'never'],
    }).to_csv(cohort.covariates, index=False)
    return cohort


@pytest.fixture
def intensity_matrix():
    """ the cohort's intensities in memory, columns already named by sample id """
    meth, unmeth, negative = synthetic_intensities(SAMPLE_IDS)
    probe_types = pd.Series(['I', 'II'] * 6, index=PROBES)
    return IntensityMatrix(meth, unmeth, negative_controls=negative, probe_types=probe_types)


@pytest.fixture
def annotation_file(tmp_path):
    return write_annotation(tmp_path.joinpath('annotation.csv'))


@pytest.fixture
def scenario_pvalues():
    """ 3 probes x 4 samples; s4 fails sample QC; p1 is detected everywhere """
    return DetectionPValueMatrix(pd.DataFrame(
        {
            's1': [0.001, 0.02, 0.001],
            's2': [0.001, 0.001, 0.01],
            's3': [0.001, 0.001, 0.001],
            's4': [0.9, 0.9, 0.9],
        },
        index=['p1', 'p2', 'p3'],
    ))
