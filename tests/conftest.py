"""Pytest configuration and fixtures."""

import pytest
import numpy as np
import pandas as pd
from pathlib import Path
import tempfile


@pytest.fixture
def cohort_data():
    """20 participants, two metabolites and three covariates."""
    np.random.seed(42)
    n = 20
    age = np.random.uniform(30, 70, n)
    bmi = np.random.uniform(18, 35, n)
    return pd.DataFrame({
        "lactose": 0.05 * age + np.random.randn(n),
        "lactate": np.random.randn(n),
        "age": age,
        "sex": pd.Categorical(["M", "F"] * (n // 2), categories=["F", "M"]),
        "bmi": bmi,
    }, index=[f"id_{i}" for i in range(n)])


@pytest.fixture
def stratified_data():
    """40 participants, half male, half female."""
    np.random.seed(42)
    n = 40
    age = np.random.uniform(30, 70, n)
    return pd.DataFrame({
        "lactose": 0.05 * age + np.random.randn(n),
        "lactate": np.random.randn(n),
        "age": age,
        "bmi": np.random.uniform(18, 35, n),
        "sex": pd.Categorical(["M", "F"] * (n // 2), categories=["F", "M"]),
    })


@pytest.fixture
def unbalanced_strata_data():
    """25 participants: 15 male, 10 female."""
    np.random.seed(7)
    n = 25
    return pd.DataFrame({
        "lactose": np.random.randn(n),
        "lactate": np.random.randn(n),
        "age": np.random.uniform(30, 70, n),
        "sex": pd.Categorical(["M"] * 15 + ["F"] * 10, categories=["F", "M"]),
    })


@pytest.fixture
def metadata():
    """Metabolite table, variable map and batch models."""
    from comets_pipeline.data.models import MetaData

    metab = pd.DataFrame({
        "metabid": ["lactose", "lactate"],
        "uid_01": ["HMDB0000186", "HMDB0000190"],
        "biochemical": ["Lactose", "Lactic acid"],
    })
    vmap = pd.DataFrame({
        "cohortvariable": ["Age", "sex", "bmi"],
        "vardefinition": ["Age at baseline (years)", "Sex", "Body mass index (kg/m2)"],
        "varreference": ["age", "female", "bmi_bmi"],
    })
    models = pd.DataFrame({
        "model": ["1 Gender adjusted", "2 Unadjusted", "3 Stratified by sex"],
        "outcomes": ["All metabolites", "All metabolites", "lactose"],
        "exposure": ["age", "age bmi", "age"],
        "adjustment": ["sex", np.nan, ""],
        "stratification": [np.nan, np.nan, "sex"],
    })
    return MetaData(
        metab=metab,
        vmap=vmap,
        models=models,
        metabolites=["lactose", "lactate"],
    )


@pytest.fixture
def empty_metadata():
    """Metadata without any entries."""
    from comets_pipeline.data.models import MetaData

    return MetaData.empty()


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
