# Lib
import logging
import numpy as np
import pandas as pd
# App
from methylqc.processing.normalization import quantile_normalize, normalize, warn_if_multiple_tissues
from methylqc.processing.postprocess import calculate_beta_value


class TestQuantileNormalize():

    def test_small_known_example(self):
        frame = pd.DataFrame({'a': [5.0, 2.0, 3.0], 'b': [4.0, 1.0, 6.0]}, index=['p1', 'p2', 'p3'])
        result = quantile_normalize(frame)
        expected = pd.DataFrame({'a': [5.5, 1.5, 3.5], 'b': [3.5, 1.5, 5.5]}, index=['p1', 'p2', 'p3'])
        pd.testing.assert_frame_equal(result, expected)

    def test_columns_share_one_distribution(self):
        rng = np.random.default_rng(0)
        frame = pd.DataFrame(rng.lognormal(8, 1, size=(50, 4)), columns=list('abcd'))
        frame['b'] *= 3
        result = quantile_normalize(frame)
        reference = np.sort(result['a'].to_numpy())
        for column in result.columns:
            np.testing.assert_allclose(np.sort(result[column].to_numpy()), reference)
            # ranks within a sample are kept
            assert (result[column].rank() == frame[column].rank()).all()

    def test_ties_get_the_mean_of_their_ranks(self):
        frame = pd.DataFrame({'a': [1.0, 1.0, 3.0], 'b': [1.0, 2.0, 3.0]})
        result = quantile_normalize(frame)
        np.testing.assert_allclose(result['a'], [1.25, 1.25, 3.0])
        np.testing.assert_allclose(result['b'], [1.0, 1.5, 3.0])

    def test_nan_stays_in_place(self):
        frame = pd.DataFrame({'a': [1.0, np.nan, 3.0, 4.0], 'b': [2.0, 5.0, 1.0, 3.0]})
        result = quantile_normalize(frame)
        assert np.isnan(result.loc[1, 'a'])
        assert result.drop(index=1).notna().all().all()
        assert result['b'].notna().all()

    def test_keeps_labels_and_does_not_modify_input(self):
        frame = pd.DataFrame({'s2': [3.0, 1.0], 's1': [2.0, 4.0]}, index=['cg2', 'cg1'])
        original = frame.copy()
        result = quantile_normalize(frame)
        assert list(result.index) == ['cg2', 'cg1']
        assert list(result.columns) == ['s2', 's1']
        pd.testing.assert_frame_equal(frame, original)


class TestNormalize():

    def test_returns_raw_and_normalized_aligned(self, intensity_matrix):
        raw, normalized = normalize(intensity_matrix)
        for values in (raw, normalized):
            assert values.beta.index.equals(intensity_matrix.probes)
            assert values.beta.columns.equals(intensity_matrix.samples)
            assert values.m_value.index.equals(intensity_matrix.probes)
        expected = calculate_beta_value(intensity_matrix.meth.to_numpy(), intensity_matrix.unmeth.to_numpy())
        np.testing.assert_allclose(raw.beta.to_numpy(), expected)
        assert not np.allclose(raw.beta.to_numpy(), normalized.beta.to_numpy())

    def test_stratified_by_probe_type(self, intensity_matrix):
        # the fourth sample is flat background, so all its values tie; leave it out
        intensity_matrix = intensity_matrix.drop_samples([intensity_matrix.samples[3]])
        _, normalized = normalize(intensity_matrix, stratify_by_type=True)
        type_one = intensity_matrix.probe_types.index[intensity_matrix.probe_types == 'I']
        meth = normalized.meth.loc[type_one]
        reference = np.sort(meth.iloc[:, 0].to_numpy())
        for column in meth.columns:
            np.testing.assert_allclose(np.sort(meth[column].to_numpy()), reference)

    def test_unstratified_ignores_probe_type(self, intensity_matrix):
        intensity_matrix = intensity_matrix.drop_samples([intensity_matrix.samples[3]])
        _, normalized = normalize(intensity_matrix, stratify_by_type=False)
        reference = np.sort(normalized.meth.iloc[:, 0].to_numpy())
        for column in normalized.meth.columns:
            np.testing.assert_allclose(np.sort(normalized.meth[column].to_numpy()), reference)


class TestWarnIfMultipleTissues():

    def test_warns_for_two_tissues(self, caplog):
        meta = pd.DataFrame({'Sample_ID': ['a', 'b'], 'Sample_Type': ['Blood', 'Saliva']})
        with caplog.at_level(logging.WARNING):
            assert warn_if_multiple_tissues(meta) is True
        assert 'single tissue' in caplog.text

    def test_single_tissue_or_no_column(self):
        assert warn_if_multiple_tissues(pd.DataFrame({'Sample_Type': ['Blood', 'Blood', 'Unknown']})) is False
        assert warn_if_multiple_tissues(pd.DataFrame({'Sample_ID': ['a']})) is False
