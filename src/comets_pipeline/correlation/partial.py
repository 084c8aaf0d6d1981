"""
Spearman partial correlation with confound adjustment.
"""

from __future__ import annotations

from typing import Union

import numpy as np
import pandas as pd

from comets_pipeline.correlation.significance import correlation_pvalue
from comets_pipeline.correlation.spearman import pearson_columns, rank_columns


def residualize(M: np.ndarray, Z: np.ndarray) -> np.ndarray:
    """
    Remove the linear effect of Z (plus intercept) from each column of M.

    M_resid = M - Z (Z'Z)^+ Z' M
    """
    n_samples = M.shape[0]
    Z_centered = Z - Z.mean(axis=0, keepdims=True)

    # Add intercept
    Z_design = np.column_stack([np.ones(n_samples), Z_centered])

    beta = np.linalg.pinv(Z_design) @ M
    return M - Z_design @ beta


class PartialCorrelator:
    """
    Spearman partial correlation controlling for confounding variables.

    Outcome, exposure and confounds are rank-transformed over the
    observations complete for the pair; outcome and exposure ranks are
    residualized on the confound ranks and the residuals correlated.

    Example:
        >>> correlator = PartialCorrelator()
        >>> # Correlate metabolites with age, controlling for sex and BMI
        >>> rho, n, pval = correlator.correlate(metabolites, age, confounds)
    """

    def __init__(self, precision: float = 1e-300):
        """
        Initialize partial correlator.

        Args:
            precision: Floor for 1 - r^2 in the t statistic.
        """
        self.precision = precision

    def correlate(
        self,
        outcomes: Union[pd.DataFrame, pd.Series],
        exposures: Union[pd.DataFrame, pd.Series],
        confounds: Union[pd.DataFrame, pd.Series],
    ) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
        """
        Compute partial correlation between outcomes and exposures given confounds.

        Args:
            outcomes: Samples x outcome variables.
            exposures: Samples x exposure variables.
            confounds: Samples x confounding variables.

        Returns:
            Tuple of (correlation, n, pvalue) frames (outcomes x exposures).
        """
        if isinstance(outcomes, pd.Series):
            outcomes = outcomes.to_frame()
        if isinstance(exposures, pd.Series):
            exposures = exposures.to_frame()
        if isinstance(confounds, pd.Series):
            confounds = confounds.to_frame()

        X = outcomes.to_numpy(dtype=np.float64)
        Y = exposures.to_numpy(dtype=np.float64)
        Z = confounds.to_numpy(dtype=np.float64)

        if np.isnan(X).any() or np.isnan(Y).any() or np.isnan(Z).any():
            rho, n = self._correlate_pairwise(X, Y, Z)
        else:
            rho, n = self._correlate_complete(X, Y, Z)

        pval = correlation_pvalue(
            rho, n, n_adjust=Z.shape[1], precision=self.precision
        )

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
        Z: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        """No missing values: residualize every column once."""
        Z_ranks = rank_columns(Z)
        X_resid = residualize(rank_columns(X), Z_ranks)
        Y_resid = residualize(rank_columns(Y), Z_ranks)

        rho = pearson_columns(X_resid, Y_resid)
        n = np.full(rho.shape, X.shape[0])
        return rho, n

    def _correlate_pairwise(
        self,
        X: np.ndarray,
        Y: np.ndarray,
        Z: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        """Missing values present: each pair uses its own complete cases."""
        rho = np.full((X.shape[1], Y.shape[1]), np.nan)
        n = np.zeros((X.shape[1], Y.shape[1]), dtype=np.int64)
        z_complete = ~np.isnan(Z).any(axis=1)

        for i in range(X.shape[1]):
            for j in range(Y.shape[1]):
                mask = z_complete & ~np.isnan(X[:, i]) & ~np.isnan(Y[:, j])
                n[i, j] = mask.sum()
                if n[i, j] < Z.shape[1] + 3:
                    continue
                Z_ranks = rank_columns(Z[mask])
                x_resid = residualize(rank_columns(X[mask, i : i + 1]), Z_ranks)
                y_resid = residualize(rank_columns(Y[mask, j : j + 1]), Z_ranks)
                rho[i, j] = pearson_columns(x_resid, y_resid)[0, 0]

        return rho, n


def partial_correlation(
    outcomes: Union[pd.DataFrame, pd.Series],
    exposures: Union[pd.DataFrame, pd.Series],
    confounds: Union[pd.DataFrame, pd.Series],
    precision: float = 1e-300,
) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """
    Compute Spearman partial correlation controlling for confounds.

    Args:
        outcomes: Samples x outcome variables.
        exposures: Samples x exposure variables.
        confounds: Samples x confounding variables.
        precision: Floor for 1 - r^2 in the t statistic.

    Returns:
        Tuple of (correlation, n, pvalue) frames (outcomes x exposures).
    """
    correlator = PartialCorrelator(precision=precision)
    return correlator.correlate(outcomes, exposures, confounds)
