"""
Offline closed-loop run: the controller drives a kinematic vehicle around a
synthetic track, fed with simulator-style telemetry
"""
import logging
from dataclasses import dataclass, field
from typing import List

import numpy as np

from mpc_steering.control.cycle import ControlCycle, Telemetry
from mpc_steering.control.actuation import ActuatorCommand
from mpc_steering.track.track import (
    circular_track,
    distance_to_centerline,
    heading_at,
    nearest_index,
    sinusoidal_track,
    waypoints_ahead,
)
from mpc_steering.track.transforms import to_world_frame
from mpc_steering.vehicle.dynamics import advance, steering_from_command

logger = logging.getLogger(__name__)

TRACKS = ("sine", "circle")


@dataclass
class SimulationResult:
    center: np.ndarray
    closed: bool
    states: List[np.ndarray] = field(default_factory=list)
    commands: List[ActuatorCommand] = field(default_factory=list)
    predictions: List[np.ndarray] = field(default_factory=list)
    references: List[np.ndarray] = field(default_factory=list)
    statuses: List[str] = field(default_factory=list)
    cross_track: List[float] = field(default_factory=list)

    @property
    def mean_cross_track(self):
        return float(np.mean(self.cross_track)) if self.cross_track else 0.0

    @property
    def max_cross_track(self):
        return float(np.max(self.cross_track)) if self.cross_track else 0.0

    @property
    def failures(self):
        return sum(1 for s in self.statuses if s != "ok")


def make_track(kind):
    if kind == "sine":
        return sinusoidal_track(), False
    if kind == "circle":
        return circular_track(), True
    raise ValueError(f"Unknown track '{kind}', expected one of {TRACKS}")


def run_simulation(config, track="sine", steps=300, start_speed=50.0, cycle_period=0.1,
                   waypoint_count=6, solver=None):
    """
    Run the controller in closed loop

    Args:
        config: ControllerConfig
        track: "sine" (open road) or "circle" (closed loop)
        steps: maximum number of control cycles
        start_speed: initial speed
        cycle_period: time between telemetry messages (seconds)
        waypoint_count: waypoints reported per message
        solver: optional solver adapter for the controller

    Returns:
        SimulationResult
    """
    center, closed = make_track(track)
    cycle = ControlCycle(config, solver=solver)
    result = SimulationResult(center=center, closed=closed)

    x, y = center[0]
    psi = heading_at(center, 0, closed)
    v = start_speed

    # Commands take effect `latency` seconds after they are issued
    pending = []
    active = ActuatorCommand.zero()
    now = 0.0
    substeps = max(1, int(round(cycle_period / config.dt)))

    for k in range(steps):
        ahead = waypoints_ahead(center, (x, y), waypoint_count, closed)
        if not closed and nearest_index(center, (x, y)) >= len(center) - 2:
            logger.info("End of track reached after %d cycles", k)
            break

        telemetry = Telemetry(
            ptsx=ahead[:, 0].tolist(), ptsy=ahead[:, 1].tolist(),
            x=float(x), y=float(y), psi=float(psi), speed=float(v),
        )
        output = cycle.run(telemetry)
        pending.append((now + config.latency, output.command))

        pose = (x, y, psi)
        if output.mpc_x:
            result.predictions.append(to_world_frame(np.column_stack([output.mpc_x, output.mpc_y]), pose))
        else:
            result.predictions.append(np.empty((0, 2)))
        if output.next_x:
            result.references.append(to_world_frame(np.column_stack([output.next_x, output.next_y]), pose))
        else:
            result.references.append(np.empty((0, 2)))
        result.statuses.append(output.status)
        result.commands.append(output.command)

        for _ in range(substeps):
            while pending and pending[0][0] <= now + 1e-9:
                active = pending.pop(0)[1]
            delta = steering_from_command(active.steering, config.steer_max)
            x, y, psi, v = advance(x, y, psi, v, delta, active.throttle, config.dt, config.lf)
            now += config.dt

        result.states.append(np.array([x, y, psi, v]))
        result.cross_track.append(distance_to_centerline(center, (x, y), closed))

        if k % 50 == 0:
            logger.info("Step %d/%d: position (%.1f, %.1f), speed %.1f, target %.1f, status %s",
                        k, steps, x, y, v, cycle.target_speed, output.status)

    logger.info("Mean |cte| %.3f, max |cte| %.3f, fallbacks %d/%d",
                result.mean_cross_track, result.max_cross_track, result.failures, len(result.statuses))
    return result
