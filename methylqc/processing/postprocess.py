# Lib
import logging
import numpy as np
import pandas as pd
# App
from ..exceptions import IndexMismatchError
from ..models import DerivedValueMatrix
from ..utils import check_alignment


__all__ = ['calculate_beta_value', 'calculate_m_value', 'build_derived_values', 'M_VALUE_EPSILON']

LOGGER = logging.getLogger(__name__)

M_VALUE_EPSILON = 1e-6


def calculate_beta_value(methylated, unmethylated, offset=100):
    """ the ratio of (methylated_intensity / total_intensity)
    where total_intensity is (meth + unmeth + 100) -- to give a score in range of 0 to 1.0.
    minfi offset is 100 and sesame offset is zero. Intensities are clipped at 1 first."""
    if offset < 0:
        raise ValueError(f"beta offset must be >= 0; you said {offset}")
    methylated = np.clip(methylated, 1, None)
    unmethylated = np.clip(unmethylated, 1, None)

    total_intensity = methylated + unmethylated + offset
    return np.true_divide(methylated, total_intensity)


def calculate_m_value(beta, epsilon=M_VALUE_EPSILON):
    """ log2(beta / (1 - beta)), with both sides clamped at epsilon so beta of exactly 0 or 1 stays finite. """
    beta = np.asarray(beta, dtype='float64')
    with np.errstate(invalid='ignore'):
        return np.log2(np.maximum(beta, epsilon) / np.maximum(1 - beta, epsilon))


def build_derived_values(meth, unmeth, offset=100, epsilon=M_VALUE_EPSILON, stage='derived values'):
    """Beta and M value matrices from methylated/unmethylated intensities.

    Arguments:
        meth, unmeth {DataFrame} -- probe x sample intensities, co-aligned.

    Both outputs must cover exactly the input probes and samples, in order; anything else
    means the matrices were corrupted and raises IndexMismatchError.

    Returns:
        [DerivedValueMatrix] -- carrying beta, m_value and the intensities.
    """
    check_alignment(meth, unmeth, stage)
    beta = pd.DataFrame(
        calculate_beta_value(meth.to_numpy(dtype='float64'), unmeth.to_numpy(dtype='float64'), offset=offset),
        index=meth.index,
        columns=meth.columns,
    )
    m_value = pd.DataFrame(
        calculate_m_value(beta.to_numpy(), epsilon=epsilon),
        index=meth.index,
        columns=meth.columns,
    )
    if beta.shape != meth.shape or m_value.shape != meth.shape:
        raise IndexMismatchError(stage, detail=f"beta {beta.shape} / m_value {m_value.shape} vs intensities {meth.shape}")
    check_alignment(meth, beta, stage)
    check_alignment(meth, m_value, stage)
    return DerivedValueMatrix(beta, m_value, meth=meth, unmeth=unmeth)
