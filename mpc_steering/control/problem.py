"""
Finite-horizon tracking problem handed to the NLP solver.

Decision vector z is stacked as:
[x_0..x_{N-1}, y_.., psi_.., v_.., cte_.., epsi_.., delta_0..delta_{N-2}, a_0..a_{N-2}]

Constraint vector g mirrors the state part of z: g[k_start] is the initial value
of state k, g[k_start + t] the model residual of state k at step t.
"""
from dataclasses import dataclass, replace

import numpy as np

from mpc_steering.config.params import UNBOUNDED, WEIGHTS
from mpc_steering.vehicle.dynamics import NUMPY_OPS, VehicleState, step

STATE_NAMES = ("x", "y", "psi", "v", "cte", "epsi")
ACTUATOR_NAMES = ("delta", "a")


class VariableLayout:
    """Index ranges of every quantity inside the decision vector."""

    def __init__(self, horizon):
        if horizon < 2:
            raise ValueError(f"Horizon must be at least 2, got {horizon}")
        self.horizon = horizon
        self.x_start = 0
        self.y_start = self.x_start + horizon
        self.psi_start = self.y_start + horizon
        self.v_start = self.psi_start + horizon
        self.cte_start = self.v_start + horizon
        self.epsi_start = self.cte_start + horizon
        self.delta_start = self.epsi_start + horizon
        self.a_start = self.delta_start + horizon - 1

    @property
    def n_vars(self):
        return self.horizon * len(STATE_NAMES) + (self.horizon - 1) * len(ACTUATOR_NAMES)

    @property
    def n_constraints(self):
        return self.horizon * len(STATE_NAMES)

    def start(self, name):
        return getattr(self, f"{name}_start")

    def slice(self, name):
        start = self.start(name)
        length = self.horizon - 1 if name in ACTUATOR_NAMES else self.horizon
        return slice(start, start + length)

    def state_starts(self):
        return [self.start(name) for name in STATE_NAMES]

    def ranges(self):
        """(name, slice) for every quantity in decision-vector order."""
        return [(name, self.slice(name)) for name in STATE_NAMES + ACTUATOR_NAMES]

    def state_at(self, z, t):
        return [z[self.start(name) + t] for name in STATE_NAMES]

    def actuation_at(self, z, t):
        return [z[self.delta_start + t], z[self.a_start + t]]


@dataclass(frozen=True)
class CostWeights:
    cte: float = WEIGHTS["cte"]
    epsi: float = WEIGHTS["epsi"]
    speed: float = WEIGHTS["speed"]
    steer: float = WEIGHTS["steer"]
    accel: float = WEIGHTS["accel"]
    steer_rate: float = WEIGHTS["steer_rate"]
    accel_rate: float = WEIGHTS["accel_rate"]

    @classmethod
    def from_dict(cls, weights):
        return cls(**{k: float(v) for k, v in weights.items()})


@dataclass(frozen=True)
class TrackingObjective:
    """
    Cost and model residuals for one cycle.

    Captures the fitted curve and weights by value; a new instance is built for
    every solve.
    """
    coeffs: tuple
    target_speed: float
    weights: CostWeights
    horizon: int
    dt: float
    lf: float

    @property
    def layout(self):
        return VariableLayout(self.horizon)

    @property
    def parameters(self):
        """Per-solve values: curve coefficients followed by the target speed."""
        return np.array(self.coeffs + (self.target_speed,), dtype=float)

    def with_parameters(self, p):
        """
        Same objective with coefficients and target speed read from `p`, laid out
        as in `parameters`. Used to trace the objective with a symbolic `p`.
        """
        n = len(self.coeffs)
        return replace(self, coeffs=tuple(p[i] for i in range(n)), target_speed=p[n])

    def cost(self, z):
        layout = self.layout
        w = self.weights
        N = self.horizon
        cost = 0.0

        # Reference state
        for t in range(N):
            cost += w.cte * z[layout.cte_start + t] ** 2
            cost += w.epsi * z[layout.epsi_start + t] ** 2
            cost += w.speed * (z[layout.v_start + t] - self.target_speed) ** 2

        # Actuator effort
        for t in range(N - 1):
            cost += w.steer * z[layout.delta_start + t] ** 2
            cost += w.accel * z[layout.a_start + t] ** 2

        # Gap between sequential actuations
        for t in range(N - 2):
            cost += w.steer_rate * (z[layout.delta_start + t + 1] - z[layout.delta_start + t]) ** 2
            cost += w.accel_rate * (z[layout.a_start + t + 1] - z[layout.a_start + t]) ** 2

        return cost

    def residuals(self, z, ops=NUMPY_OPS):
        layout = self.layout
        g = [None] * layout.n_constraints

        for start in layout.state_starts():
            g[start] = z[start]

        for t in range(1, self.horizon):
            predicted = step(layout.state_at(z, t - 1), layout.actuation_at(z, t - 1),
                             self.coeffs, self.dt, self.lf, ops)
            actual = layout.state_at(z, t)
            for start, a, p in zip(layout.state_starts(), actual, predicted):
                g[start + t] = a - p

        return g

    def __call__(self, z, ops=NUMPY_OPS):
        return self.cost(z), self.residuals(z, ops)


@dataclass
class OptimizationProblem:
    x0: np.ndarray
    lbx: np.ndarray
    ubx: np.ndarray
    lbg: np.ndarray
    ubg: np.ndarray
    objective: TrackingObjective

    @property
    def layout(self):
        return self.objective.layout

    def cost(self, z):
        return float(self.objective.cost(np.asarray(z, dtype=float)))

    def constraints(self, z):
        return np.array(self.objective.residuals(np.asarray(z, dtype=float)), dtype=float)


def build_problem(state, coeffs, target_speed, horizon, dt, lf, steer_max, accel_max, weights=None):
    """
    Assemble the optimization problem for one control cycle.

    Args:
        state: measured VehicleState, pins the first step
        coeffs: fitted reference curve, ascending powers
        target_speed: cruise target for this cycle
        horizon: number of steps N
        dt: step duration
        lf: front axle to CoG distance
        steer_max: steering bound (radians)
        accel_max: throttle bound
        weights: CostWeights, defaults when None

    Returns:
        OptimizationProblem
    """
    if isinstance(state, VehicleState):
        state = state.as_array()
    state = np.asarray(state, dtype=float)

    layout = VariableLayout(horizon)
    n_vars = layout.n_vars
    starts = layout.state_starts()

    x0 = np.zeros(n_vars)
    x0[starts] = state

    lbx = np.full(n_vars, -UNBOUNDED)
    ubx = np.full(n_vars, UNBOUNDED)
    lbx[layout.slice("delta")] = -steer_max
    ubx[layout.slice("delta")] = steer_max
    lbx[layout.slice("a")] = -accel_max
    ubx[layout.slice("a")] = accel_max

    lbg = np.zeros(layout.n_constraints)
    ubg = np.zeros(layout.n_constraints)
    lbg[starts] = state
    ubg[starts] = state

    objective = TrackingObjective(
        coeffs=tuple(float(c) for c in coeffs),
        target_speed=float(target_speed),
        weights=weights if weights is not None else CostWeights(),
        horizon=horizon,
        dt=dt,
        lf=lf,
    )
    return OptimizationProblem(x0=x0, lbx=lbx, ubx=ubx, lbg=lbg, ubg=ubg, objective=objective)
