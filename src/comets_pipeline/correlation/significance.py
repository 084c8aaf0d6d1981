"""
Two-sided significance of (partial) correlation coefficients.
"""

from __future__ import annotations

from typing import Union

import numpy as np
from scipy import stats

ArrayLike = Union[np.ndarray, float]


def correlation_pvalue(
    rho: ArrayLike,
    n: ArrayLike,
    n_adjust: int = 0,
    precision: float = 1e-300,
) -> np.ndarray:
    """
    P-value of a correlation from the t approximation.

    t = r * sqrt(df / (1 - r^2)) with df = n - 2 - n_adjust, and
    p = 2 * P(T > |t|). The upper tail is taken from the survival function
    so that very small p-values are not lost to ``1 - cdf`` rounding.

    Args:
        rho: Correlation coefficient(s).
        n: Number of observations behind each coefficient.
        n_adjust: Number of adjustment columns partialed out.
        precision: Floor for 1 - r^2, keeps |r| = 1 finite.

    Returns:
        P-values with the broadcast shape of ``rho`` and ``n``; NaN where
        the coefficient is undefined or df < 1.
    """
    rho = np.asarray(rho, dtype=np.float64)
    n = np.asarray(n, dtype=np.float64)
    df = n - 2 - n_adjust

    valid = np.isfinite(rho) & (df >= 1)
    safe_df = np.where(valid, df, 1.0)
    safe_rho = np.where(valid, rho, 0.0)

    denom = np.maximum(1.0 - safe_rho**2, precision)
    t_stat = safe_rho * np.sqrt(safe_df / denom)
    pval = 2.0 * stats.t.sf(np.abs(t_stat), df=safe_df)

    return np.where(valid, np.clip(pval, 0.0, 1.0), np.nan)
