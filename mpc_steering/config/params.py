"""
Controller parameters and their override layer
"""
import math
from dataclasses import dataclass, field, fields, replace

import yaml

from mpc_steering.errors import ConfigurationInvariantViolation

HORIZON = 15
DT = 0.05  # 0.75 s of lookahead

# Distance from the front axle to the CoG. Tuned so the model's turning radius
# at constant steering matches the simulator.
LF = 2.67

LIMITS = dict(
    steer_max=0.436332,  # 25 deg
    accel_max=1.0
)

# Speed regulator: straight track -> max_v, heading deviation -> towards min_v.
# A curvature factor of 2 halves the range by a 45 deg deviation.
SPEED = dict(
    max_v=100.0,
    min_v=45.0,
    curvature_factor=2.0
)

WEIGHTS = dict(
    cte=1.0,
    epsi=1.0,
    speed=1.0,
    steer=150.0,
    accel=1.0,
    steer_rate=2000.0,
    accel_rate=1.0
)

LATENCY = 0.1  # seconds between issuing and applying a command
POLY_ORDER = 3
UNBOUNDED = 1.0e19

SOLVER = dict(
    backend="ipopt",
    max_iter=200,
    max_cpu_time=0.5
)

# Keyword options each backend accepts; scipy has no time limit and drops max_cpu_time
SOLVER_OPTIONS = dict(
    ipopt=("max_iter", "max_cpu_time", "tol", "print_level"),
    scipy=("max_iter", "max_cpu_time", "ftol")
)

BRIDGE = dict(
    host="0.0.0.0",
    port=4567,
    actuation_delay=0.1
)


@dataclass(frozen=True)
class ControllerConfig:
    """
    Everything one control session needs. Read-only once built.
    """
    horizon: int = HORIZON
    dt: float = DT
    lf: float = LF
    steer_max: float = LIMITS["steer_max"]
    accel_max: float = LIMITS["accel_max"]
    max_v: float = SPEED["max_v"]
    min_v: float = SPEED["min_v"]
    curvature_factor: float = SPEED["curvature_factor"]
    latency: float = LATENCY
    poly_order: int = POLY_ORDER
    weights: dict = field(default_factory=lambda: dict(WEIGHTS))
    solver: dict = field(default_factory=lambda: dict(SOLVER))

    def __post_init__(self):
        self.validate()

    def validate(self):
        if self.horizon < 3:
            raise ConfigurationInvariantViolation(
                f"Horizon must cover at least 3 steps, got {self.horizon}")
        if self.dt <= 0:
            raise ConfigurationInvariantViolation(f"Step duration must be positive, got {self.dt}")
        if self.latency < 0:
            raise ConfigurationInvariantViolation(f"Latency cannot be negative, got {self.latency}")
        if self.min_v > self.max_v:
            raise ConfigurationInvariantViolation(
                f"min_v {self.min_v} exceeds max_v {self.max_v}")

        # The latency-shifted state (offset + 1) must still lie inside the horizon
        offset = math.floor(self.latency / self.dt)
        if offset + 1 > self.horizon - 1:
            raise ConfigurationInvariantViolation(
                f"Latency {self.latency}s is {offset} steps, beyond horizon of {self.horizon} steps")

        unknown = set(self.weights) - set(WEIGHTS)
        if unknown:
            raise ConfigurationInvariantViolation(f"Unknown cost weights: {sorted(unknown)}")

        options = dict(self.solver)
        backend = options.pop("backend", SOLVER["backend"])
        if backend not in SOLVER_OPTIONS:
            raise ConfigurationInvariantViolation(
                f"Unknown solver backend '{backend}', expected one of {sorted(SOLVER_OPTIONS)}")
        unknown = set(options) - set(SOLVER_OPTIONS[backend])
        if unknown:
            raise ConfigurationInvariantViolation(
                f"Options {sorted(unknown)} are not accepted by the {backend} solver")

    @classmethod
    def from_dict(cls, overrides):
        """
        Build a config from defaults plus overrides.

        Args:
            overrides: flat mapping of field names; 'weights' and 'solver' are
                merged into the defaults rather than replacing them

        Returns:
            ControllerConfig
        """
        known = {f.name for f in fields(cls)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")

        values = dict(overrides)
        values["weights"] = {**WEIGHTS, **(overrides.get("weights") or {})}
        values["solver"] = {**SOLVER, **(overrides.get("solver") or {})}
        return cls(**values)

    def with_overrides(self, **changes):
        changes = {k: v for k, v in changes.items() if v is not None}
        if "weights" in changes:
            changes["weights"] = {**self.weights, **changes["weights"]}
        if "solver" in changes:
            changes["solver"] = {**self.solver, **changes["solver"]}
        return replace(self, **changes)


def load_config(path):
    """
    Read a YAML file of overrides.

    The file may hold a 'controller' section and a 'bridge' section; a file
    without sections is treated as controller overrides.

    Returns:
        (ControllerConfig, bridge settings dict)
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")

    if "controller" in data or "bridge" in data:
        controller = data.get("controller") or {}
        bridge = {**BRIDGE, **(data.get("bridge") or {})}
    else:
        controller = data
        bridge = dict(BRIDGE)

    return ControllerConfig.from_dict(controller), bridge
