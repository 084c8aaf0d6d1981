"""
Spearman rank correlation with pairwise-complete observations.
"""

from __future__ import annotations

from typing import Union

import numpy as np
import pandas as pd
from scipy import stats

from comets_pipeline.correlation.significance import correlation_pvalue


def rank_columns(X: np.ndarray) -> np.ndarray:
    """Convert each column to ranks (average for ties)."""
    ranks = np.zeros_like(X, dtype=np.float64)
    for j in range(X.shape[1]):
        ranks[:, j] = stats.rankdata(X[:, j], method="average")
    return ranks


def pearson_columns(X: np.ndarray, Y: np.ndarray) -> np.ndarray:
    """
    Pearson correlation between every column of X and every column of Y.

    Columns without variance give NaN.
    """
    X_centered = X - X.mean(axis=0, keepdims=True)
    Y_centered = Y - Y.mean(axis=0, keepdims=True)

    X_norm = np.sqrt((X_centered**2).sum(axis=0))
    Y_norm = np.sqrt((Y_centered**2).sum(axis=0))

    with np.errstate(divide="ignore", invalid="ignore"):
        rho = (X_centered.T @ Y_centered) / np.outer(X_norm, Y_norm)

    rho[~np.isfinite(rho)] = np.nan
    return np.clip(rho, -1.0, 1.0)


class SpearmanCorrelator:
    """
    Spearman rank correlation between outcome and exposure variables.

    Ranks are computed on the observations where both variables of a pair
    are present; the returned matrices have outcomes as rows and exposures
    as columns regardless of how many of each there are.

    Example:
        >>> correlator = SpearmanCorrelator()
        >>> rho, n, pval = correlator.correlate(data[["lactose"]], data[["age", "bmi"]])
    """

    def __init__(self, precision: float = 1e-300):
        """
        Initialize Spearman correlator.

        Args:
            precision: Floor for 1 - r^2 in the t statistic.
        """
        self.precision = precision

    def correlate(
        self,
        outcomes: Union[pd.DataFrame, pd.Series],
        exposures: Union[pd.DataFrame, pd.Series],
    ) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
        """
        Compute Spearman correlation between outcomes and exposures.

        Args:
            outcomes: Samples x outcome variables.
            exposures: Samples x exposure variables.

        Returns:
            Tuple of (correlation, n, pvalue) frames (outcomes x exposures).
        """
        if isinstance(outcomes, pd.Series):
            outcomes = outcomes.to_frame()
        if isinstance(exposures, pd.Series):
            exposures = exposures.to_frame()

        X = outcomes.to_numpy(dtype=np.float64)
        Y = exposures.to_numpy(dtype=np.float64)

        if np.isnan(X).any() or np.isnan(Y).any():
            rho, n = self._correlate_pairwise(X, Y)
        else:
            rho, n = self._correlate_complete(X, Y)

        pval = correlation_pvalue(rho, n, precision=self.precision)

        index, columns = list(outcomes.columns), list(exposures.columns)
        return (
            pd.DataFrame(rho, index=index, columns=columns),
            pd.DataFrame(n.astype(np.int64), index=index, columns=columns),
            pd.DataFrame(pval, index=index, columns=columns),
        )

    def _correlate_complete(
        self,
        X: np.ndarray,
        Y: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        """All observations present: one ranking per column."""
        rho = pearson_columns(rank_columns(X), rank_columns(Y))
        n = np.full(rho.shape, X.shape[0])
        return rho, n

    def _correlate_pairwise(
        self,
        X: np.ndarray,
        Y: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Missing values present: rank each pair on its joint observations."""
        rho = np.full((X.shape[1], Y.shape[1]), np.nan)
        n = np.zeros((X.shape[1], Y.shape[1]), dtype=np.int64)

        for i in range(X.shape[1]):
            for j in range(Y.shape[1]):
                mask = ~np.isnan(X[:, i]) & ~np.isnan(Y[:, j])
                n[i, j] = mask.sum()
                if n[i, j] < 2:
                    continue
                x = stats.rankdata(X[mask, i], method="average")
                y = stats.rankdata(Y[mask, j], method="average")
                rho[i, j] = pearson_columns(x[:, None], y[:, None])[0, 0]

        return rho, n


def spearman_correlation(
    outcomes: Union[pd.DataFrame, pd.Series],
    exposures: Union[pd.DataFrame, pd.Series],
    precision: float = 1e-300,
) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """
    Compute Spearman correlation between outcomes and exposures.

    Args:
        outcomes: Samples x outcome variables.
        exposures: Samples x exposure variables.
        precision: Floor for 1 - r^2 in the t statistic.

    Returns:
        Tuple of (correlation, n, pvalue) frames (outcomes x exposures).
    """
    correlator = SpearmanCorrelator(precision=precision)
    return correlator.correlate(outcomes, exposures)
