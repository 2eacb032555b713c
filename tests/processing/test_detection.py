# Lib
import numpy as np
import pandas as pd
import pytest
# App
from methylqc.exceptions import AllSamplesFailedError, IndexMismatchError
from methylqc.models import DetectionPValueMatrix, IntensityMatrix
from methylqc.processing.detection import (
    compute_detection_pvalues,
    sample_failure_mask,
    probe_failure_mask,
    drop_failed_samples,
)


def _meta(sample_ids):
    return pd.DataFrame({'Sample_ID': list(sample_ids), 'Sample_Name': [f'n{i}' for i in range(len(sample_ids))]})


class TestSampleFailureMask():

    def test_three_by_four_scenario(self, scenario_pvalues):
        assert sample_failure_mask(scenario_pvalues, 0.05) == {'s4'}
        remaining = scenario_pvalues.drop_samples(['s4'])
        failed = probe_failure_mask(remaining, threshold=0.01)
        assert 'p1' not in failed
        assert failed == {'p2', 'p3'}

    def test_mean_equal_to_threshold_passes(self):
        detp = DetectionPValueMatrix(pd.DataFrame({'a': [0.05, 0.05], 'b': [0.05, 0.06]}, index=['p1', 'p2']))
        assert sample_failure_mask(detp, threshold=0.05) == {'b'}

    def test_accepts_plain_data_frame(self):
        df = pd.DataFrame({'a': [0.0, 0.0], 'b': [1.0, 1.0]}, index=['p1', 'p2'])
        assert sample_failure_mask(df) == {'b'}

    def test_rejects_threshold_outside_unit_interval(self, scenario_pvalues):
        with pytest.raises(ValueError):
            sample_failure_mask(scenario_pvalues, threshold=1.5)
        with pytest.raises(ValueError):
            sample_failure_mask(scenario_pvalues, threshold=-0.1)


class TestProbeFailureMask():

    def test_single_cell_at_threshold_excludes_probe(self):
        detp = DetectionPValueMatrix(pd.DataFrame({'a': [0.001, 0.001], 'b': [0.001, 0.01]}, index=['p1', 'p2']))
        assert probe_failure_mask(detp, threshold=0.01) == {'p2'}

    def test_nan_fails(self):
        detp = DetectionPValueMatrix(pd.DataFrame({'a': [0.001, np.nan]}, index=['p1', 'p2']))
        assert probe_failure_mask(detp) == {'p2'}


class TestComputeDetectionPValues():

    def test_background_samples_and_probes_score_high(self, intensity_matrix):
        for method in ('minfi', 'negative_ecdf'):
            detp = compute_detection_pvalues(intensity_matrix, method=method)
            assert detp.shape == intensity_matrix.shape
            assert detp.probes.equals(intensity_matrix.probes)
            assert detp.samples.equals(intensity_matrix.samples)
            df = detp.data_frame
            good_samples = list(intensity_matrix.samples[:3])
            assert (df.loc[intensity_matrix.probes[:11], good_samples] < 0.01).all().all()
            assert (df.loc[intensity_matrix.probes[11], good_samples] >= 0.01).all()
            assert (df[intensity_matrix.samples[3]] > 0.5).all()

    def test_lower_signal_gives_higher_pvalue(self, intensity_matrix):
        detp = compute_detection_pvalues(intensity_matrix).data_frame
        sample = intensity_matrix.samples[0]
        total = intensity_matrix.meth[sample] + intensity_matrix.unmeth[sample]
        order = total.sort_values().index
        assert detp.loc[order, sample].is_monotonic_decreasing

    def test_column_results_do_not_depend_on_other_samples(self, intensity_matrix):
        full = compute_detection_pvalues(intensity_matrix).data_frame
        subset = intensity_matrix.drop_samples(list(intensity_matrix.samples[1:]))
        alone = compute_detection_pvalues(subset).data_frame
        pd.testing.assert_frame_equal(alone, full[alone.columns])

    def test_requires_negative_controls(self, intensity_matrix):
        matrix = IntensityMatrix(intensity_matrix.meth, intensity_matrix.unmeth)
        with pytest.raises(ValueError):
            compute_detection_pvalues(matrix)

    def test_unknown_method_raises(self, intensity_matrix):
        with pytest.raises(ValueError):
            compute_detection_pvalues(intensity_matrix, method='poobah')


class TestDropFailedSamples():

    def test_removes_failed_sample_from_every_table(self, intensity_matrix):
        detp = compute_detection_pvalues(intensity_matrix)
        meta = _meta(intensity_matrix.samples)
        result = drop_failed_samples(intensity_matrix, detp, meta)
        failed = intensity_matrix.samples[3]
        assert result.failed == [failed]
        assert failed not in result.matrix.samples
        assert failed not in result.detection.samples
        assert failed not in result.matrix.negative_controls.columns
        assert list(result.meta_data['Sample_ID']) == list(result.matrix.samples)
        # inputs untouched
        assert failed in intensity_matrix.samples
        assert len(meta) == 4

    def test_all_samples_failing_raises(self, intensity_matrix):
        detp = compute_detection_pvalues(intensity_matrix)
        with pytest.raises(AllSamplesFailedError):
            drop_failed_samples(intensity_matrix, detp, _meta(intensity_matrix.samples), threshold=0.0)

    def test_misaligned_meta_data_raises(self, intensity_matrix):
        detp = compute_detection_pvalues(intensity_matrix)
        meta = _meta(list(reversed(intensity_matrix.samples)))
        with pytest.raises(IndexMismatchError):
            drop_failed_samples(intensity_matrix, detp, meta)

    def test_misaligned_detection_raises(self, intensity_matrix):
        detp = compute_detection_pvalues(intensity_matrix).select_probes(intensity_matrix.probes[:5])
        with pytest.raises(IndexMismatchError):
            drop_failed_samples(intensity_matrix, detp, _meta(intensity_matrix.samples))
