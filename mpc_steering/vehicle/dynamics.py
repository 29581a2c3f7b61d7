from collections import namedtuple
from dataclasses import astuple, dataclass

import numpy as np

from mpc_steering.track.polyfit import polyderiv, polyeval

# Elementary functions used by the model. Swapping these lets the same equations
# produce floats or symbolic solver expressions.
MathOps = namedtuple("MathOps", ["cos", "sin", "atan"])

NUMPY_OPS = MathOps(cos=np.cos, sin=np.sin, atan=np.arctan)


@dataclass(frozen=True)
class VehicleState:
    """
    Vehicle state in its own frame, re-origined every control cycle.

    Attributes:
        x, y, psi: pose (zero at the start of a cycle)
        v: speed
        cte: cross-track error against the fitted curve
        epsi: heading error against the fitted curve
    """
    x: float
    y: float
    psi: float
    v: float
    cte: float
    epsi: float

    def as_array(self):
        return np.array(astuple(self), dtype=float)

    @classmethod
    def from_array(cls, values):
        return cls(*(float(v) for v in values))


def advance(x, y, psi, v, delta, a, dt, lf, ops=NUMPY_OPS):
    """Pose and speed one step ahead: (x, y, psi, v)."""
    return (x + v * ops.cos(psi) * dt,
            y + v * ops.sin(psi) * dt,
            psi + v / lf * delta * dt,
            v + a * dt)


def step(state, actuation, coeffs, dt, lf, ops=NUMPY_OPS):
    """
    Discrete kinematic bicycle model with tracking errors.

    Args:
        state: [x, y, psi, v, cte, epsi]
        actuation: [delta, a]
        coeffs: reference curve y = f(x), ascending powers
        dt: time step
        lf: distance from the front axle to the CoG
        ops: MathOps used for cos/sin/atan

    Returns:
        next state [x, y, psi, v, cte, epsi] as a list
    """
    x, y, psi, v, _cte, _epsi = state[0], state[1], state[2], state[3], state[4], state[5]
    delta, a = actuation[0], actuation[1]

    x1, y_pred, psi1, v1 = advance(x, y, psi, v, delta, a, dt, lf, ops)

    psides = ops.atan(polyeval(polyderiv(coeffs), x))

    # Error is taken against the curve at the next x, not the current one
    cte1 = polyeval(coeffs, x1) - y_pred
    epsi1 = (psi - psides) + v / lf * delta * dt

    return [x1, y_pred, psi1, v1, cte1, epsi1]


def rollout(state, actuations, coeffs, dt, lf):
    """
    Propagate the model over a sequence of actuations.

    Returns:
        (len(actuations) + 1, 6) array of states, starting with `state`
    """
    if isinstance(state, VehicleState):
        state = state.as_array()
    states = [np.asarray(state, dtype=float)]
    for u in actuations:
        states.append(np.array(step(states[-1], u, coeffs, dt, lf), dtype=float))
    return np.array(states)


def steering_from_command(steering, steer_max):
    """Normalized actuator steering back to a model angle in radians."""
    return -steering * steer_max
