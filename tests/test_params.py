"""Unit tests for parameter validation, candidate clamping and data cleaning."""

import numpy as np
import pytest

from subtest.mixture.params import (
    InputShapeError,
    ParameterRangeError,
    as_params,
    check_data,
    clamp_candidate,
    is_valid_params,
    validate_params,
)

VALID = np.array([0.8, 0.1, 2.0, 2.0, 3.0, 0.5])


@pytest.mark.tier0
class TestValidateParams:
    """Tests for validate_params / is_valid_params."""

    def test_valid_vector_returned_as_float64(self):
        out = validate_params([0.8, 0.1, 2, 2, 3, 0.5])
        assert out.dtype == np.float64
        np.testing.assert_array_equal(out, VALID)

    def test_returns_copy(self):
        pars = VALID.copy()
        out = validate_params(pars)
        out[0] = 0.5
        assert pars[0] == 0.8

    def test_wrong_length(self):
        with pytest.raises(ParameterRangeError, match="six elements"):
            validate_params([0.8, 0.1, 2, 2, 3])

    @pytest.mark.parametrize(
        "index,value",
        [(0, 0.0), (0, 1.0), (1, -0.1), (2, 0.0), (3, -1.0), (4, 0.0), (5, -0.1)],
    )
    def test_out_of_range_component(self, index, value):
        pars = VALID.copy()
        pars[index] = value
        with pytest.raises(ParameterRangeError):
            validate_params(pars)
        assert not is_valid_params(pars)

    def test_simplex_violation(self):
        pars = VALID.copy()
        pars[:2] = [0.6, 0.4]
        with pytest.raises(ParameterRangeError, match="pi0, pi1 and pi2"):
            validate_params(pars)

    def test_rho_at_positive_definite_limit_rejected(self):
        pars = VALID.copy()
        pars[5] = pars[2] * pars[4]
        with pytest.raises(ParameterRangeError, match="positive definite"):
            validate_params(pars)

    def test_rho_just_below_limit_accepted(self):
        pars = VALID.copy()
        pars[5] = pars[2] * pars[4] * (1 - 1e-9)
        assert is_valid_params(pars)

    def test_nonfinite_rejected(self):
        pars = VALID.copy()
        pars[3] = np.nan
        with pytest.raises(ParameterRangeError, match="finite"):
            validate_params(pars)
        assert not is_valid_params(pars)

    def test_is_valid_params_never_raises(self):
        assert not is_valid_params("not numbers")
        assert not is_valid_params([1, 2])
        assert is_valid_params(VALID)

    def test_parameter_range_error_is_value_error(self):
        with pytest.raises(ValueError):
            as_params(np.zeros(7))


@pytest.mark.tier0
class TestClampCandidate:
    """Tests for clamp_candidate used by the acceleration step."""

    def test_valid_candidate_unchanged(self):
        out = clamp_candidate(VALID, VALID)
        np.testing.assert_array_equal(out, VALID)

    def test_sd_floor(self):
        cand = np.array([0.8, 0.1, 0.1, -2.0, 0.4, 0.0])
        out = clamp_candidate(cand, VALID, sd_floor=0.5)
        np.testing.assert_array_equal(out[2:5], [0.5, 0.5, 0.5])

    def test_negative_probability_floored(self):
        cand = np.array([0.8, -0.2, 2.0, 2.0, 3.0, 0.5])
        out = clamp_candidate(cand, VALID, prob_floor=1e-64)
        assert out[1] == 1e-64
        assert is_valid_params(out)

    def test_simplex_violation_reverts_to_fallback(self):
        cand = np.array([0.9, 0.2, 2.5, 2.0, 3.0, 0.5])
        fallback = np.array([0.7, 0.2, 2.0, 2.0, 3.0, 0.5])
        out = clamp_candidate(cand, fallback)
        np.testing.assert_array_equal(out[:2], [0.7, 0.2])
        assert out[2] == 2.5

    def test_rho_capped(self):
        cand = np.array([0.8, 0.1, 2.0, 2.0, 3.0, 10.0])
        out = clamp_candidate(cand, VALID, rho_cap=0.95)
        assert out[5] == pytest.approx(0.95 * 6.0)

    def test_negative_rho_floored_at_zero(self):
        cand = np.array([0.8, 0.1, 2.0, 2.0, 3.0, -1.0])
        assert clamp_candidate(cand, VALID)[5] == 0.0

    def test_candidate_not_modified(self):
        cand = np.array([0.9, 0.2, 0.1, 2.0, 3.0, 10.0])
        before = cand.copy()
        clamp_candidate(cand, VALID)
        np.testing.assert_array_equal(cand, before)


@pytest.mark.tier0
class TestCheckData:
    """Tests for data shape checks and cleaning."""

    def test_absolute_values_taken(self):
        z = np.array([[-1.0, 2.0], [3.0, -4.0]])
        z_clean, w, n_dropped = check_data(z)
        np.testing.assert_array_equal(z_clean, [[1.0, 2.0], [3.0, 4.0]])
        np.testing.assert_array_equal(w, [1.0, 1.0])
        assert n_dropped == 0

    def test_nonfinite_rows_dropped_and_counted(self):
        z = np.array([[1.0, 2.0], [np.nan, 1.0], [1.0, np.inf], [0.5, 0.5]])
        w = np.array([1.0, 1.0, 1.0, np.nan])
        z_clean, w_clean, n_dropped = check_data(z, w)
        assert n_dropped == 3
        np.testing.assert_array_equal(z_clean, [[1.0, 2.0]])
        np.testing.assert_array_equal(w_clean, [1.0])

    def test_wrong_columns(self):
        with pytest.raises(InputShapeError, match="n x 2"):
            check_data(np.ones((5, 3)))

    def test_one_dimensional(self):
        with pytest.raises(InputShapeError):
            check_data(np.ones(5))

    def test_weights_length_mismatch(self):
        with pytest.raises(InputShapeError, match="weights must have length 4"):
            check_data(np.ones((4, 2)), np.ones(3))

    def test_input_not_modified(self):
        z = np.array([[-1.0, 2.0]])
        check_data(z)
        assert z[0, 0] == -1.0
