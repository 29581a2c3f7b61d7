"""
One control cycle: telemetry in, actuator command and display data out
"""
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from mpc_steering.control.actuation import ActuatorCommand, extract
from mpc_steering.control.mpc import MPC
from mpc_steering.control.speed import SpeedRegulator
from mpc_steering.errors import IllConditionedError, InvalidInputError, SolveFailure
from mpc_steering.track.polyfit import polyeval, polyfit
from mpc_steering.track.transforms import to_vehicle_frame
from mpc_steering.vehicle.dynamics import VehicleState

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_INVALID_INPUT = "invalid-input"
STATUS_ILL_CONDITIONED = "ill-conditioned"


@dataclass(frozen=True)
class Telemetry:
    """Waypoints and pose in the map frame, as reported by the simulator."""
    ptsx: List[float]
    ptsy: List[float]
    x: float
    y: float
    psi: float
    speed: float


@dataclass
class CycleOutput:
    command: ActuatorCommand
    status: str = STATUS_OK
    mpc_x: List[float] = field(default_factory=list)
    mpc_y: List[float] = field(default_factory=list)
    next_x: List[float] = field(default_factory=list)
    next_y: List[float] = field(default_factory=list)
    target_speed: Optional[float] = None
    predicted_state: Optional[VehicleState] = None
    coeffs: Optional[np.ndarray] = None
    error: str = ""

    @property
    def ok(self):
        return self.status == STATUS_OK


def reference_samples(coeffs, last_x, count):
    """Evenly spaced points of the fitted curve from x = 0 towards last_x."""
    step_x = last_x / count
    xs = [i * step_x for i in range(count)]
    return xs, [float(polyeval(coeffs, x)) for x in xs]


class ControlCycle:
    """
    Per-session controller. Keeps the session's target speed and last good
    command; nothing is shared between instances.
    """

    def __init__(self, config, solver=None):
        self.config = config
        self.mpc = MPC(config, solver=solver)
        self.regulator = SpeedRegulator(
            max_v=config.max_v,
            min_v=config.min_v,
            curvature_factor=config.curvature_factor,
            horizon=config.horizon,
            dt=config.dt,
        )
        self.target_speed = config.max_v
        self.last_command = ActuatorCommand.zero()

    def safe_command(self):
        """Hold the last steering, release the throttle."""
        return ActuatorCommand(steering=self.last_command.steering, throttle=0.0)

    def _fallback(self, status, error, **extra):
        logger.warning("Cycle fell back to safe command (%s): %s", status, error)
        return CycleOutput(command=self.safe_command(), status=status, error=str(error),
                           target_speed=self.target_speed, **extra)

    def fit(self, telemetry):
        """Waypoints to the vehicle frame, then the cubic reference curve."""
        if len(telemetry.ptsx) != len(telemetry.ptsy):
            raise InvalidInputError(
                f"Got {len(telemetry.ptsx)} x and {len(telemetry.ptsy)} y waypoints")
        if not telemetry.ptsx:
            raise InvalidInputError("No waypoints")

        world = np.column_stack([telemetry.ptsx, telemetry.ptsy])
        local = to_vehicle_frame(world, (telemetry.x, telemetry.y, telemetry.psi))
        coeffs = polyfit(local[:, 0], local[:, 1], self.config.poly_order)
        return local, coeffs

    def run(self, telemetry):
        """
        Args:
            telemetry: Telemetry for this cycle

        Returns:
            CycleOutput; on failure the command is the safe default and
            `status` names the failure
        """
        cfg = self.config
        try:
            local, coeffs = self.fit(telemetry)
        except InvalidInputError as e:
            return self._fallback(STATUS_INVALID_INPUT, e)
        except IllConditionedError as e:
            return self._fallback(STATUS_ILL_CONDITIONED, e)

        # Vehicle sits at the origin of its own frame
        cte = float(coeffs[0])
        epsi = math.atan(float(coeffs[1]))
        state = VehicleState(0.0, 0.0, 0.0, float(telemetry.speed), cte, epsi)

        self.target_speed = self.regulator.target_speed(coeffs, state.v)
        next_x, next_y = reference_samples(coeffs, float(local[-1, 0]), cfg.horizon)
        logger.debug("cte %.3f epsi %.3f v %.2f target %.2f", cte, epsi, state.v, self.target_speed)

        result = self.mpc.solve(state, coeffs, self.target_speed)
        try:
            result.raise_for_status()
        except SolveFailure as e:
            return self._fallback(e.kind.value, e, next_x=next_x, next_y=next_y, coeffs=coeffs)

        actuation = extract(result, self.mpc.layout, cfg.latency, cfg.dt, cfg.steer_max)
        self.last_command = actuation.command

        return CycleOutput(
            command=actuation.command,
            mpc_x=actuation.trajectory_x,
            mpc_y=actuation.trajectory_y,
            next_x=next_x,
            next_y=next_y,
            target_speed=self.target_speed,
            predicted_state=actuation.predicted_state,
            coeffs=coeffs,
        )
