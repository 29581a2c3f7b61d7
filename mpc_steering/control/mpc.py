import logging

from mpc_steering.control.problem import CostWeights, VariableLayout, build_problem
from mpc_steering.control.solver import make_solver

logger = logging.getLogger(__name__)


class MPC:
    """
    Nonlinear MPC over the kinematic bicycle model, solved by an external NLP
    solver.

    Decision vector layout: see control.problem.VariableLayout.
    """

    def __init__(self, config, solver=None):
        self.config = config
        self.layout = VariableLayout(config.horizon)
        self.weights = CostWeights.from_dict(config.weights)
        if solver is None:
            options = dict(config.solver)
            backend = options.pop("backend", "ipopt")
            solver = make_solver(backend, **options)
        self.solver = solver

    def build(self, state, coeffs, target_speed):
        cfg = self.config
        return build_problem(
            state, coeffs, target_speed,
            horizon=cfg.horizon, dt=cfg.dt, lf=cfg.lf,
            steer_max=cfg.steer_max, accel_max=cfg.accel_max,
            weights=self.weights,
        )

    def solve(self, state, coeffs, target_speed):
        """
        Args:
            state: VehicleState at the start of the cycle
            coeffs: fitted reference curve
            target_speed: cruise target for this cycle

        Returns:
            SolverResult
        """
        problem = self.build(state, coeffs, target_speed)
        result = self.solver.solve(problem)
        logger.debug("Solve %s in %.1f ms, %d iterations, cost %.3f",
                     result.status.value, result.solve_time * 1e3, result.iterations, result.cost)
        return result
