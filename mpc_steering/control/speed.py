"""
Adaptive cruise target from the curvature of the road ahead
"""
import logging
import math

from mpc_steering.track.polyfit import polyderiv, polyeval

logger = logging.getLogger(__name__)


class SpeedRegulator:
    """
    Straight road -> max_v, bendy road -> down towards min_v.

    The heading deviation is read where the vehicle would be after the whole
    horizon at its current speed. The regulator holds no state; the caller
    keeps the result for its own session.
    """

    def __init__(self, max_v, min_v, curvature_factor, horizon, dt):
        self.max_v = max_v
        self.min_v = min_v
        self.curvature_factor = curvature_factor
        self.horizon = horizon
        self.dt = dt

    def lookahead(self, current_speed):
        return current_speed * self.dt * self.horizon

    def raw_target_speed(self, coeffs, current_speed):
        """Unclamped target; can leave [min_v, max_v] for large deviations."""
        slope = polyeval(polyderiv(coeffs), self.lookahead(current_speed))
        theta = math.atan(slope)
        return (self.max_v - self.min_v) * (1 - abs(theta) * self.curvature_factor / math.pi) + self.min_v

    def target_speed(self, coeffs, current_speed):
        raw = self.raw_target_speed(coeffs, current_speed)
        target = min(max(raw, self.min_v), self.max_v)
        if target != raw:
            logger.debug("Target speed %.2f clamped to %.2f", raw, target)
        return target
