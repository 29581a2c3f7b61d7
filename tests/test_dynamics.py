"""
Tests for the discrete kinematic bicycle model.
"""
import math

import numpy as np
import pytest

from mpc_steering.vehicle.dynamics import VehicleState, advance, rollout, step, steering_from_command

DT = 0.05
LF = 2.67
FLAT = (0.0, 0.0, 0.0, 0.0)


class TestStraightLine:
    def test_constant_acceleration_matches_closed_form(self):
        v0, a, steps = 20.0, 0.8, 12
        states = rollout(VehicleState(0.0, 0.0, 0.0, v0, 0.0, 0.0), [(0.0, a)] * steps, FLAT, DT, LF)

        for k in range(steps + 1):
            x_expected = DT * (k * v0 + a * DT * k * (k - 1) / 2)
            assert states[k, 0] == pytest.approx(x_expected)
            assert states[k, 3] == pytest.approx(v0 + a * DT * k)
        np.testing.assert_allclose(states[:, 1], 0.0)
        np.testing.assert_allclose(states[:, 2], 0.0)

    def test_heading_is_kept_without_steering(self):
        psi0 = 0.6
        states = rollout([0.0, 0.0, psi0, 10.0, 0.0, 0.0], [(0.0, 0.5)] * 5, FLAT, DT, LF)
        np.testing.assert_allclose(states[:, 2], psi0)
        # Motion stays on the ray at angle psi0
        np.testing.assert_allclose(states[1:, 1] / states[1:, 0], math.tan(psi0))


class TestStep:
    def test_yaw_rate(self):
        nxt = step([0.0, 0.0, 0.0, 10.0, 0.0, 0.0], [0.2, 0.0], FLAT, DT, LF)
        assert nxt[2] == pytest.approx(10.0 / LF * 0.2 * DT)

    def test_cte_uses_curve_at_next_x(self):
        coeffs = (0.0, 0.5, 0.0, 0.0)
        nxt = step([0.0, 0.0, 0.0, 10.0, 0.0, 0.0], [0.0, 0.0], coeffs, 0.1, LF)
        # x advances to 1.0 where f = 0.5; at the current x the curve is 0
        assert nxt[0] == pytest.approx(1.0)
        assert nxt[4] == pytest.approx(0.5)

    def test_epsi_uses_desired_heading_at_current_x(self):
        coeffs = (0.0, 0.5, 0.0, 0.0)
        nxt = step([0.0, 0.0, 0.1, 10.0, 0.0, 0.0], [0.05, 0.0], coeffs, 0.1, LF)
        assert nxt[5] == pytest.approx(0.1 - math.atan(0.5) + 10.0 / LF * 0.05 * 0.1)

    def test_advance_matches_step_pose(self):
        state = [3.0, -1.0, 0.3, 15.0, 0.0, 0.0]
        nxt = step(state, [0.1, -0.4], FLAT, DT, LF)
        assert advance(3.0, -1.0, 0.3, 15.0, 0.1, -0.4, DT, LF) == pytest.approx(tuple(nxt[:4]))


class TestVehicleState:
    def test_array_round_trip(self):
        state = VehicleState(1.0, 2.0, 0.1, 30.0, -0.2, 0.05)
        assert VehicleState.from_array(state.as_array()) == state

    def test_is_immutable(self):
        state = VehicleState(0.0, 0.0, 0.0, 1.0, 0.0, 0.0)
        with pytest.raises(AttributeError):
            state.v = 2.0

    def test_steering_from_command_flips_sign(self):
        assert steering_from_command(0.5, 0.4) == pytest.approx(-0.2)
