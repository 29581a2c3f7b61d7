"""
Latency-compensated command extraction from a solved horizon
"""
import math
from dataclasses import dataclass

import numpy as np

from mpc_steering.errors import ConfigurationInvariantViolation
from mpc_steering.vehicle.dynamics import VehicleState


@dataclass(frozen=True)
class ActuatorCommand:
    """Steering and throttle, both normalized to [-1, 1]; negative throttle brakes."""
    steering: float
    throttle: float

    @classmethod
    def zero(cls):
        return cls(steering=0.0, throttle=0.0)


@dataclass(frozen=True)
class Actuation:
    command: ActuatorCommand
    predicted_state: VehicleState
    trajectory_x: list
    trajectory_y: list
    offset: int


def step_offset(latency, dt):
    """Number of whole steps that elapse before a command takes effect."""
    return int(math.floor(latency / dt))


def extract(result, layout, latency, dt, steer_max):
    """
    Pick the command the vehicle should be issuing once `latency` has passed.

    The actuation is read at horizon index `offset`, the predicted state at
    `offset + 1`.

    Args:
        result: SolverResult with a solved decision vector
        layout: VariableLayout of that vector
        latency: actuation delay (seconds)
        dt: step duration
        steer_max: steering bound used to normalize the angle

    Returns:
        Actuation
    """
    offset = step_offset(latency, dt)
    if offset < 0 or offset + 1 > layout.horizon - 1:
        raise ConfigurationInvariantViolation(
            f"Latency offset of {offset} steps does not fit a horizon of {layout.horizon}")

    z = np.asarray(result.x, dtype=float)
    if z.size != layout.n_vars:
        raise ConfigurationInvariantViolation(
            f"Solution has {z.size} entries, layout expects {layout.n_vars}")

    delta = z[layout.delta_start + offset]
    a = z[layout.a_start + offset]

    # The actuator steers opposite to the model's angle convention
    command = ActuatorCommand(steering=float(-delta / steer_max), throttle=float(a))
    predicted = VehicleState.from_array(layout.state_at(z, offset + 1))

    return Actuation(
        command=command,
        predicted_state=predicted,
        trajectory_x=z[layout.slice("x")].tolist(),
        trajectory_y=z[layout.slice("y")].tolist(),
        offset=offset,
    )
