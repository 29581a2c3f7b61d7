"""
Least-squares polynomial fit of the local reference curve
"""
import numpy as np
from scipy.linalg import qr, solve_triangular

from mpc_steering.errors import IllConditionedError, InvalidInputError

# Smallest accepted ratio between the diagonal entries of R
RCOND = 1e-10


def polyfit(xs, ys, order):
    """
    Fit y = c0 + c1*x + ... + c_order*x^order through the points.

    The Vandermonde system is solved through a QR decomposition rather than the
    normal equations.

    Args:
        xs: sample x-coordinates
        ys: sample y-coordinates
        order: polynomial order, 1 <= order <= len(xs) - 1

    Returns:
        Coefficients in ascending powers, shape (order + 1,)
    """
    xs = np.asarray(xs, dtype=float).ravel()
    ys = np.asarray(ys, dtype=float).ravel()

    if xs.size != ys.size:
        raise InvalidInputError(f"Got {xs.size} x values but {ys.size} y values")
    if not 1 <= order <= xs.size - 1:
        raise InvalidInputError(
            f"Order {order} fit needs at least {max(order, 1) + 1} points, got {xs.size}")
    if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))):
        raise InvalidInputError("Waypoints contain non-finite values")

    with np.errstate(over="ignore", invalid="ignore"):
        A = np.vander(xs, order + 1, increasing=True)
        # Unit columns so the rank test does not depend on the x range
        scale = np.sqrt((A * A).sum(axis=0))
    if not (np.all(np.isfinite(A)) and np.all(np.isfinite(scale))):
        raise IllConditionedError(
            f"Powers of x up to {order} overflow (max |x| = {np.abs(xs).max():.3g})")
    scale[scale == 0.0] = 1.0
    Q, R = qr(A / scale, mode="economic")

    diag = np.abs(np.diag(R))
    if diag.min() <= RCOND * diag.max():
        raise IllConditionedError(
            f"Design matrix is rank deficient (min |R_ii| = {diag.min():.3g})")

    return solve_triangular(R, Q.T @ ys) / scale


def polyeval(coeffs, x):
    """Horner evaluation; x may be a float, an array or a CasADi symbol."""
    result = 0.0
    for c in reversed(coeffs):
        result = result * x + c
    return result


def polyderiv(coeffs):
    """Coefficients of the derivative, ascending powers; entries may be symbolic."""
    coeffs = list(coeffs)
    if len(coeffs) < 2:
        return (0.0,)
    return tuple(i * c for i, c in enumerate(coeffs) if i > 0)
