"""
Adapters around external nonlinear-programming solvers.

Both adapters consume an OptimizationProblem and return a SolverResult; neither
implements any optimization itself.
"""
import enum
import logging
import time
from dataclasses import dataclass

import casadi as ca
import numpy as np
from scipy.optimize import Bounds, minimize

from mpc_steering.config.params import UNBOUNDED
from mpc_steering.errors import SolveFailure
from mpc_steering.vehicle.dynamics import MathOps

logger = logging.getLogger(__name__)

CASADI_OPS = MathOps(cos=ca.cos, sin=ca.sin, atan=ca.atan)


class SolveStatus(enum.Enum):
    SUCCESS = "success"
    INFEASIBLE = "infeasible"
    ITERATION_LIMIT = "iteration-limit"
    NUMERICAL_ERROR = "numerical-error"


@dataclass(frozen=True)
class SolverResult:
    status: SolveStatus
    x: np.ndarray
    cost: float
    message: str = ""
    iterations: int = 0
    solve_time: float = 0.0

    @property
    def ok(self):
        return self.status is SolveStatus.SUCCESS

    def raise_for_status(self):
        if not self.ok:
            raise SolveFailure(self.status, self.message)


_IPOPT_STATUS = {
    "Solve_Succeeded": SolveStatus.SUCCESS,
    "Solved_To_Acceptable_Level": SolveStatus.SUCCESS,
    "Feasible_Point_Found": SolveStatus.SUCCESS,
    "Infeasible_Problem_Detected": SolveStatus.INFEASIBLE,
    "Not_Enough_Degrees_Of_Freedom": SolveStatus.INFEASIBLE,
    "Maximum_Iterations_Exceeded": SolveStatus.ITERATION_LIMIT,
    "Maximum_CpuTime_Exceeded": SolveStatus.ITERATION_LIMIT,
    "Maximum_WallTime_Exceeded": SolveStatus.ITERATION_LIMIT,
}


def ipopt_status(return_status):
    return _IPOPT_STATUS.get(return_status, SolveStatus.NUMERICAL_ERROR)


class IpoptSolver:
    """
    Ipopt through CasADi. The objective is traced symbolically so first and
    second derivatives come from automatic differentiation.

    The traced NLP depends only on the problem structure (horizon, step, axle
    distance, weights, curve order); it is built once per structure and the
    curve coefficients and target speed are passed as the parameter vector `p`
    on every solve.
    """
    name = "ipopt"

    def __init__(self, max_iter=200, max_cpu_time=0.5, tol=1e-8, print_level=0):
        self.max_iter = max_iter
        self.max_cpu_time = max_cpu_time
        self.tol = tol
        self.print_level = print_level
        self._nlp = {}

    def _options(self):
        return {
            "ipopt": {
                "print_level": self.print_level,
                "max_iter": self.max_iter,
                "max_cpu_time": self.max_cpu_time,
                "tol": self.tol,
                "sb": "yes",
            },
            "print_time": 0,
            "error_on_fail": False,
        }

    def nlp_for(self, objective):
        """Built Ipopt function for the structure of `objective`."""
        key = (objective.horizon, objective.dt, objective.lf, objective.weights, len(objective.coeffs))
        if key not in self._nlp:
            z = ca.SX.sym("z", objective.layout.n_vars)
            p = ca.SX.sym("p", len(objective.coeffs) + 1)
            cost, residuals = objective.with_parameters(p)(z, CASADI_OPS)
            nlp = {"x": z, "p": p, "f": cost, "g": ca.vertcat(*residuals)}
            self._nlp[key] = ca.nlpsol("mpc", "ipopt", nlp, self._options())
            logger.debug("Built Ipopt NLP for horizon %d, %d variables", objective.horizon, z.numel())
        return self._nlp[key]

    def solve(self, problem):
        solver = self.nlp_for(problem.objective)

        start = time.perf_counter()
        res = solver(x0=problem.x0, p=problem.objective.parameters,
                     lbx=problem.lbx, ubx=problem.ubx, lbg=problem.lbg, ubg=problem.ubg)
        elapsed = time.perf_counter() - start

        stats = solver.stats()
        return_status = stats.get("return_status", "")
        return SolverResult(
            status=ipopt_status(return_status),
            x=np.array(res["x"], dtype=float).ravel(),
            cost=float(res["f"]),
            message=return_status,
            iterations=int(stats.get("iter_count", 0)),
            solve_time=elapsed,
        )


_SLSQP_STATUS = {
    0: SolveStatus.SUCCESS,
    4: SolveStatus.INFEASIBLE,
    9: SolveStatus.ITERATION_LIMIT,
}


class ScipySolver:
    """
    SciPy SLSQP with finite-difference derivatives. Slower than Ipopt; needs no
    native solver build.
    """
    name = "scipy"

    def __init__(self, max_iter=200, ftol=1e-8):
        self.max_iter = max_iter
        self.ftol = ftol

    def solve(self, problem):
        lower = np.where(problem.lbx <= -UNBOUNDED, -np.inf, problem.lbx)
        upper = np.where(problem.ubx >= UNBOUNDED, np.inf, problem.ubx)
        # Every constraint is an equality: lbg == ubg
        target = problem.lbg

        start = time.perf_counter()
        res = minimize(
            problem.cost,
            problem.x0,
            method="SLSQP",
            bounds=Bounds(lower, upper),
            constraints=[{"type": "eq", "fun": lambda z: problem.constraints(z) - target}],
            options={"maxiter": self.max_iter, "ftol": self.ftol},
        )
        elapsed = time.perf_counter() - start

        status = _SLSQP_STATUS.get(int(res.status), SolveStatus.NUMERICAL_ERROR)
        if status is SolveStatus.SUCCESS and not np.all(np.isfinite(res.x)):
            status = SolveStatus.NUMERICAL_ERROR
        return SolverResult(
            status=status,
            x=np.asarray(res.x, dtype=float),
            cost=float(res.fun),
            message=str(res.message),
            iterations=int(res.nit),
            solve_time=elapsed,
        )


SOLVERS = {
    IpoptSolver.name: IpoptSolver,
    ScipySolver.name: ScipySolver,
}


def make_solver(backend="ipopt", **options):
    """
    Args:
        backend: 'ipopt' or 'scipy'
        options: keyword arguments for the adapter; 'max_cpu_time' is ignored
            by backends without a time limit

    Returns:
        solver adapter with a solve(problem) method
    """
    try:
        cls = SOLVERS[backend]
    except KeyError:
        raise ValueError(f"Unknown solver backend '{backend}', expected one of {sorted(SOLVERS)}") from None

    if cls is ScipySolver:
        options = {k: v for k, v in options.items() if k in ("max_iter", "ftol")}
    logger.debug("Using %s solver with %s", backend, options)
    return cls(**options)
