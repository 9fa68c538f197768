"""Unit tests for model descriptors and fitters."""

import numpy as np
import pandas as pd
import pytest
from statsmodels.regression.mixed_linear_model import MixedLM

from jointsim.data.generator import JointDataGenerator
from jointsim.data.scenarios import JointScenario, get_scenario
from jointsim.models import (
    LongitudinalModelSpec,
    ModelFitError,
    SurvivalModelSpec,
    fit_joint,
    fit_longitudinal,
    fit_survival,
)


@pytest.fixture
def fit_data():
    """Dataset large enough for stable estimates."""
    scenario = JointScenario(name="fit", m=150, n_i=6)
    return JointDataGenerator(scenario, seed=11).generate()


class TestLongitudinalModelSpec:
    """Tests for the mixed model descriptor."""

    def test_design_columns(self, small_scenario):
        """Test column order and dummy coding of the design."""
        data = JointDataGenerator(small_scenario, seed=42).generate()
        design = LongitudinalModelSpec().design(data.longitudinal)

        assert list(design.columns) == ["Intercept", "x1l", "x2l[2]", "x2l[3]", "x3l", "time"]
        assert np.all(design["Intercept"] == 1.0)

        x2 = data.longitudinal["x2l"].astype(int).to_numpy()
        np.testing.assert_array_equal(design["x2l[2]"], (x2 == 2).astype(float))
        np.testing.assert_array_equal(design["x2l[3]"], (x2 == 3).astype(float))
        # Reference level has no column
        assert np.all(design.loc[x2 == 1, ["x2l[2]", "x2l[3]"]].to_numpy() == 0)

    def test_design_without_time(self, small_scenario):
        """Test that time can be left out of the fixed effects."""
        data = JointDataGenerator(small_scenario, seed=42).generate()
        design = LongitudinalModelSpec(include_time=False).design(data.longitudinal)
        assert "time" not in design.columns

    def test_design_from_plain_integers(self):
        """Test dummy coding of a factor stored as plain integers."""
        df = pd.DataFrame({"x1l": [0, 1, 0], "x2l": [3, 1, 2], "x3l": [60, 70, 65], "time": [0, 0, 0]})
        design = LongitudinalModelSpec().design(df)
        assert list(design["x2l[3]"]) == [1.0, 0.0, 0.0]

    def test_random_design(self, small_scenario):
        """Test random-effects design for both structures."""
        data = JointDataGenerator(small_scenario, seed=42).generate()

        intercept = LongitudinalModelSpec().random_design(data.longitudinal)
        slope = LongitudinalModelSpec(random_slope=True).random_design(data.longitudinal)

        assert list(intercept.columns) == ["Intercept"]
        assert list(slope.columns) == ["Intercept", "time"]

    def test_for_scenario(self, small_scenario, slope_scenario):
        """Test that the descriptor follows the scenario's structure."""
        assert not LongitudinalModelSpec.for_scenario(small_scenario).random_slope
        assert LongitudinalModelSpec.for_scenario(slope_scenario).random_slope


class TestSurvivalModelSpec:
    """Tests for the Cox model descriptor."""

    def test_frame_columns(self, small_scenario):
        """Test column selection order."""
        data = JointDataGenerator(small_scenario, seed=42).generate()
        frame = SurvivalModelSpec().frame(data.survival)
        assert list(frame.columns) == ["survtime", "status", "x1", "x3"]


class TestFitLongitudinal:
    """Tests for linear mixed model fits."""

    def test_recovers_fixed_effects(self, fit_data):
        """Test that estimates land near the generating values."""
        fit = fit_longitudinal(fit_data.longitudinal)

        assert list(fit.fixed_effects.index) == [
            "Intercept", "x1l", "x2l[2]", "x2l[3]", "x3l", "time",
        ]
        assert fit.fixed_effects["x1l"] == pytest.approx(-10.0, abs=1.5)
        assert fit.fixed_effects["x2l[2]"] == pytest.approx(5.0, abs=1.5)
        assert fit.fixed_effects["x2l[3]"] == pytest.approx(15.0, abs=1.5)
        assert fit.fixed_effects["time"] == pytest.approx(0.0, abs=0.3)
        assert fit.sigma_e == pytest.approx(2.5, abs=0.3)
        assert fit.sigma_u == pytest.approx(1.5, abs=0.6)

    def test_intercept_only_outputs(self, fit_data):
        """Test shapes of the random-intercept fit."""
        fit = fit_longitudinal(fit_data.longitudinal)

        assert fit.sigma_s is None
        assert fit.re_correlation is None
        assert list(fit.random_effects.columns) == ["u_intercept"]
        assert len(fit.random_effects) == 150
        assert fit.random_effects.index.name == "id"
        assert fit.n_obs == 900
        assert fit.n_groups == 150
        assert isinstance(fit.converged, bool)

    @pytest.mark.parametrize("seed", range(20))
    def test_default_scenario_fits_for_many_seeds(self, seed):
        """Test the random-intercept scenario fits without a singular-matrix failure."""
        data = JointDataGenerator(get_scenario("random_intercept"), seed=seed).generate()

        fit = fit_longitudinal(data.longitudinal)

        assert np.isfinite(fit.fixed_effects.to_numpy()).all()
        assert np.isfinite(fit.sigma_e)
        assert fit.sigma_u >= 0

    def test_singular_default_fit_falls_back(self, fit_data, monkeypatch):
        """Test that a singular-matrix failure retries with other optimizers."""
        real_fit = MixedLM.fit
        methods = []

        def singular_first(self, *args, **kwargs):
            methods.append(kwargs.get("method"))
            if len(methods) == 1:
                raise np.linalg.LinAlgError("Singular matrix")
            return real_fit(self, *args, **kwargs)

        monkeypatch.setattr(MixedLM, "fit", singular_first)
        fit = fit_longitudinal(fit_data.longitudinal)

        assert methods[0] is None
        assert methods[1] == ["bfgs", "lbfgs", "cg"]
        assert fit.fixed_effects["x1l"] == pytest.approx(-10.0, abs=1.5)

    def test_every_optimizer_failing_raises(self, fit_data, monkeypatch):
        """Test that ModelFitError is raised once all optimizers fail."""
        def always_singular(self, *args, **kwargs):
            raise np.linalg.LinAlgError("Singular matrix")

        monkeypatch.setattr(MixedLM, "fit", always_singular)

        with pytest.raises(ModelFitError, match="LinAlgError"):
            fit_longitudinal(fit_data.longitudinal)

    def test_random_slope_fit(self, slope_scenario):
        """Test that the slope model reports slope SD and correlation."""
        data = JointDataGenerator(slope_scenario, seed=5).generate()
        spec = LongitudinalModelSpec.for_scenario(slope_scenario)

        fit = fit_longitudinal(data.longitudinal, spec)

        assert list(fit.random_effects.columns) == ["u_intercept", "u_slope"]
        assert fit.sigma_s == pytest.approx(2.0, abs=0.6)
        assert -1.0 <= fit.re_correlation <= 1.0

    def test_blups_track_true_effects(self, fit_data):
        """Test that predicted intercepts correlate with the drawn ones."""
        fit = fit_longitudinal(fit_data.longitudinal)

        predicted = fit.random_effects["u_intercept"].sort_index().to_numpy()
        corr = np.corrcoef(predicted, fit_data.random_effects[:, 0])[0, 1]
        assert corr > 0.5


class TestFitSurvival:
    """Tests for Cox model fits."""

    def test_coefficients(self, fit_data):
        """Test that the hazard coefficients are reported per covariate."""
        fit = fit_survival(fit_data.survival)

        assert list(fit.coefficients.index) == ["x1", "x3"]
        assert list(fit.standard_errors.index) == ["x1", "x3"]
        assert np.all(fit.standard_errors > 0)
        assert fit.n_events == int(fit_data.survival["status"].sum())
        assert 0.0 <= fit.concordance <= 1.0

    def test_no_events_raises(self, fit_data):
        """Test that a table without events cannot be fitted."""
        survival = fit_data.survival.assign(status=0)

        with pytest.raises(ModelFitError) as exc_info:
            fit_survival(survival)

        assert exc_info.value.stage == "survival"

    def test_extra_covariates(self, fit_data):
        """Test that extra columns enter the linear predictor."""
        rng = np.random.default_rng(0)
        survival = fit_data.survival.assign(noise=rng.normal(size=len(fit_data.survival)))

        fit = fit_survival(survival, extra_covariates=["noise"])
        assert list(fit.coefficients.index) == ["x1", "x3", "noise"]


class TestFitJoint:
    """Tests for the two-stage joint model."""

    def test_joint_fit(self, fit_data):
        """Test that the association is estimated and positive."""
        fit = fit_joint(fit_data)

        assert list(fit.association.index) == ["u_intercept"]
        assert list(fit.survival.coefficients.index) == ["x1", "x3", "u_intercept"]
        assert fit.association["u_intercept"] > 0
        assert fit.n_at_risk_rows <= len(fit_data.longitudinal)
        assert fit.n_at_risk_rows == len(fit_data.at_risk_longitudinal())

    def test_joint_fit_with_slope(self, slope_scenario):
        """Test that the slope structure adds a second association."""
        data = JointDataGenerator(slope_scenario, seed=5).generate()
        spec = LongitudinalModelSpec.for_scenario(slope_scenario)

        fit = fit_joint(data, long_spec=spec)

        assert list(fit.association.index) == ["u_intercept", "u_slope"]

    def test_model_fit_error_message(self):
        """Test the stage prefix of fit errors."""
        error = ModelFitError("joint", "no rows")
        assert error.stage == "joint"
        assert "joint" in str(error)
        assert isinstance(error, RuntimeError)
