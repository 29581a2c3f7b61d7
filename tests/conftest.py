"""
Shared fixtures: a controller config with a generous solver time limit and a
scripted solver that stands in for the NLP backend.
"""
import numpy as np
import pytest

from mpc_steering.config.params import ControllerConfig
from mpc_steering.control.problem import VariableLayout
from mpc_steering.control.solver import SolverResult, SolveStatus


class ScriptedSolver:
    """Returns queued results and records every problem it is handed."""

    def __init__(self, results=None):
        self.results = list(results or [])
        self.problems = []

    def solve(self, problem):
        self.problems.append(problem)
        return self.results.pop(0)


def solved(horizon=15, status=SolveStatus.SUCCESS, delta=0.0, a=0.0, offset=2):
    """A SolverResult whose actuation at `offset` is (delta, a)."""
    layout = VariableLayout(horizon)
    z = np.zeros(layout.n_vars)
    z[layout.delta_start + offset] = delta
    z[layout.a_start + offset] = a
    z[layout.slice("x")] = np.arange(horizon, dtype=float)
    return SolverResult(status=status, x=z, cost=0.0, message=status.value)


@pytest.fixture
def config():
    # CI machines can be slow; keep the deadline well away from real solves
    return ControllerConfig.from_dict({"solver": {"max_cpu_time": 10.0}})


@pytest.fixture
def scripted_solver():
    return ScriptedSolver


@pytest.fixture
def solved_result():
    return solved
