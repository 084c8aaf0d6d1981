"""Tests for adjustment covariate preparation."""

import pytest
import numpy as np
import pandas as pd


class TestEncoding:
    """Test dummy encoding of categorical adjustments."""

    def test_binary_dummy(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
        from comets_pipeline.data.models import ModelDataset

        model = ModelDataset(data=cohort_data, rcovs=["lactose"], ccovs=["age"], acovs=["sex"])
        prepared = AdjustmentPreprocessor().prepare(model)

        assert prepared.acovs == ["sexM"]
        assert prepared.adjvars == ["sex"]
        assert prepared.encoding == {"sex": ["sexM"]}
        expected = (cohort_data["sex"] == "M").astype(float).to_numpy()
        np.testing.assert_array_equal(prepared.data["sexM"].to_numpy(), expected)

    def test_k_levels_give_k_minus_one_columns(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
        from comets_pipeline.data.models import ModelDataset

        data = cohort_data.assign(site=["north", "south", "east", "west"] * 5)
        model = ModelDataset(data=data, rcovs=["lactose"], ccovs=["age"], acovs=["site"])
        prepared = AdjustmentPreprocessor().prepare(model)

        # "east" sorts first and is the reference level
        assert prepared.acovs == ["sitenorth", "sitesouth", "sitewest"]

        dummies = prepared.data[prepared.acovs]
        assert set(np.unique(dummies.to_numpy())) <= {0.0, 1.0}
        assert (dummies.sum(axis=1) <= 1).all()

        recovered = pd.Series("east", index=data.index)
        for col in dummies.columns:
            recovered[dummies[col] == 1] = col[len("site"):]
        assert (recovered == data["site"]).all()

    def test_continuous_adjustment_passes_through(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
        from comets_pipeline.data.models import ModelDataset

        model = ModelDataset(data=cohort_data, rcovs=["lactose"], ccovs=["age"], acovs=["bmi"])
        prepared = AdjustmentPreprocessor().prepare(model)

        assert prepared.acovs == ["bmi"]
        np.testing.assert_allclose(prepared.data["bmi"], cohort_data["bmi"])

    def test_explicit_kind_overrides_dtype(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
        from comets_pipeline.data.models import ModelDataset, VariableKind

        data = cohort_data.assign(visit=[1, 2] * 10)
        model = ModelDataset(
            data=data,
            rcovs=["lactose"],
            ccovs=["age"],
            acovs=["visit"],
            kinds={"visit": VariableKind.CATEGORICAL},
        )
        prepared = AdjustmentPreprocessor().prepare(model)
        assert prepared.acovs == ["visit2"]

    def test_missing_categorical_propagates(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
        from comets_pipeline.core.exceptions import DataQualityWarning
        from comets_pipeline.data.models import ModelDataset

        data = cohort_data.copy()
        data.loc[data.index[0], "sex"] = np.nan
        model = ModelDataset(data=data, rcovs=["lactose"], ccovs=["age"], acovs=["sex"])

        with pytest.warns(DataQualityWarning):
            prepared = AdjustmentPreprocessor().prepare(model)

        assert np.isnan(prepared.data["sexM"].iloc[0])
        assert not prepared.data["sexM"].iloc[1:].isna().any()
        assert [d.code for d in prepared.diagnostics] == ["missing_categorical"]


class TestValidation:
    """Test adjustment validation."""

    def test_constant_adjustment_dropped(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
        from comets_pipeline.core.exceptions import DataQualityWarning
        from comets_pipeline.data.models import ModelDataset

        data = cohort_data.assign(site="A")
        model = ModelDataset(
            data=data, rcovs=["lactose"], ccovs=["age"], acovs=["site", "bmi"]
        )

        with pytest.warns(DataQualityWarning, match="site"):
            prepared = AdjustmentPreprocessor().prepare(model)

        assert prepared.adjvars == ["bmi"]
        assert prepared.acovs == ["bmi"]
        assert prepared.diagnostics[0].code == "constant_adjustment"
        assert prepared.diagnostics[0].variables == ["site"]

    def test_all_adjustments_constant_runs_unadjusted(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
        from comets_pipeline.core.exceptions import DataQualityWarning
        from comets_pipeline.data.models import ModelDataset

        data = cohort_data.assign(site="A")
        model = ModelDataset(data=data, rcovs=["lactose"], ccovs=["age"], acovs=["site"])

        with pytest.warns(DataQualityWarning):
            prepared = AdjustmentPreprocessor().prepare(model)

        assert not prepared.adjusted
        assert prepared.adjvars == []

    def test_input_not_modified(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
        from comets_pipeline.data.models import ModelDataset

        original = cohort_data.copy()
        model = ModelDataset(data=cohort_data, rcovs=["lactose"], ccovs=["age"], acovs=["sex"])
        AdjustmentPreprocessor().prepare(model)

        pd.testing.assert_frame_equal(cohort_data, original)


class TestCollinearity:
    """Test collinearity repair."""

    def test_duplicate_dummy_removed(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
        from comets_pipeline.core.exceptions import DataQualityWarning
        from comets_pipeline.data.models import ModelDataset

        data = cohort_data.assign(gender=cohort_data["sex"].astype(str))
        model = ModelDataset(
            data=data, rcovs=["lactose"], ccovs=["age"], acovs=["sex", "gender"]
        )

        with pytest.warns(DataQualityWarning, match="genderM"):
            prepared = AdjustmentPreprocessor().prepare(model)

        assert prepared.acovs == ["sexM"]
        assert prepared.diagnostics[-1].code == "collinear_adjustment"
        assert prepared.diagnostics[-1].variables == ["genderM"]

    def test_scaled_copy_removed(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
        from comets_pipeline.core.config import CorrelationConfig
        from comets_pipeline.core.exceptions import DataQualityWarning
        from comets_pipeline.data.models import ModelDataset

        data = cohort_data.assign(bmi2=cohort_data["bmi"] * 2 + 1)
        model = ModelDataset(
            data=data, rcovs=["lactose"], ccovs=["age"], acovs=["bmi", "bmi2", "sex"]
        )

        config = CorrelationConfig(collinearity_tolerance=1e-10)
        with pytest.warns(DataQualityWarning):
            prepared = AdjustmentPreprocessor(config).prepare(model)

        assert prepared.acovs == ["bmi", "sexM"]

    def test_no_perfect_correlation_kept(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
        from comets_pipeline.data.models import ModelDataset

        model = ModelDataset(
            data=cohort_data, rcovs=["lactose"], ccovs=["age"], acovs=["bmi", "sex"]
        )
        prepared = AdjustmentPreprocessor().prepare(model)

        assert prepared.acovs == ["bmi", "sexM"]
        assert prepared.diagnostics == []

    def test_negative_correlation_kept(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor

        data = pd.DataFrame({"a": cohort_data["bmi"], "b": -cohort_data["bmi"]})
        kept = AdjustmentPreprocessor().resolve_collinearity(data, ["a", "b"])
        assert kept == ["a", "b"]


class TestReuse:
    """Test one preprocessor shared across several models."""

    def test_diagnostics_independent_across_calls(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
        from comets_pipeline.core.exceptions import DataQualityWarning
        from comets_pipeline.data.models import ModelDataset

        prep = AdjustmentPreprocessor()
        constant = ModelDataset(
            data=cohort_data.assign(site="A"),
            rcovs=["lactose"],
            ccovs=["age"],
            acovs=["site", "bmi"],
        )
        clean = ModelDataset(
            data=cohort_data, rcovs=["lactose"], ccovs=["age"], acovs=["bmi"]
        )

        with pytest.warns(DataQualityWarning):
            first = prep.prepare(constant)
        second = prep.prepare(clean)

        assert second.diagnostics == []
        assert [d.code for d in first.diagnostics] == ["constant_adjustment"]
        assert first.diagnostics is not second.diagnostics

    def test_step_methods_without_collector(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import AdjustmentPreprocessor
        from comets_pipeline.core.exceptions import DataQualityWarning
        from comets_pipeline.data.models import ModelDataset

        model = ModelDataset(
            data=cohort_data.assign(site="A"), rcovs=["lactose"], ccovs=["age"], acovs=["site"]
        )
        collected = []

        with pytest.warns(DataQualityWarning):
            assert AdjustmentPreprocessor().validate(model, ["site"]) == []
        with pytest.warns(DataQualityWarning):
            AdjustmentPreprocessor().validate(model, ["site"], collected)

        assert [d.variables for d in collected] == [["site"]]


class TestCategoryLevels:
    """Test level ordering of categorical columns."""

    def test_mixed_types_encode(self, cohort_data):
        from comets_pipeline.adjustment.preprocessor import (
            AdjustmentPreprocessor,
            category_levels,
        )
        from comets_pipeline.data.models import ModelDataset

        mixed = pd.Series([1, "2"] * 10, index=cohort_data.index, dtype=object)
        assert category_levels(mixed) == [1, "2"]

        model = ModelDataset(
            data=cohort_data.assign(visit=mixed),
            rcovs=["lactose"],
            ccovs=["age"],
            acovs=["visit"],
        )
        prepared = AdjustmentPreprocessor().prepare(model)

        assert prepared.acovs == ["visit2"]
        expected = (mixed == "2").astype(float).to_numpy()
        np.testing.assert_array_equal(prepared.data["visit2"].to_numpy(), expected)

    def test_numeric_levels_sort_numerically(self):
        from comets_pipeline.adjustment.preprocessor import category_levels

        assert category_levels(pd.Series([10, 2, 1, 2])) == [1, 2, 10]
