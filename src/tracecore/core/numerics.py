"""Scalar helpers shared by the geometry code.

This module collects the floating-point utilities used throughout the core:
the conservative rounding-error bound ``gamma(n)``, IEEE-style reciprocals,
interpolation and clamping helpers, angle conversion and a numerically stable
quadratic solver.

Python raises ``ZeroDivisionError`` on ``1.0 / 0.0`` where the rest of a ray
tracer expects ``inf``. Every division on the intersection hot path goes
through :func:`reciprocal` so that degenerate inputs propagate as Inf/NaN
instead of raising.

Example:
    >>> from tracecore.core.numerics import gamma, quadratic
    >>> found, t0, t1 = quadratic(1.0, -10.0, 24.0)
    >>> (found, t0, t1)
    (True, 4.0, 6.0)
"""

from __future__ import annotations

import math

# Unit roundoff bound used by the error analysis (ulp of 1.0).
MACHINE_EPSILON = math.ulp(1.0)

# Largest finite double, used for the empty-bounds sentinel.
MAX_FLOAT = 1.7976931348623157e308


def gamma(n: float) -> float:
    """Conservative bound on the relative error of ``n`` chained operations.

    Computes ``n * eps / (1 - n * eps)``.

    Args:
        n: Number of floating-point operations.

    Returns:
        The multiplicative error bound.
    """
    return (n * MACHINE_EPSILON) / (1.0 - n * MACHINE_EPSILON)


def reciprocal(x: float) -> float:
    """Return ``1 / x`` with IEEE semantics for zero.

    ``reciprocal(0.0)`` is ``+inf`` and ``reciprocal(-0.0)`` is ``-inf``.
    """
    if x == 0.0:
        return math.copysign(math.inf, x)
    return 1.0 / x


def lerp(t: float, a: float, b: float) -> float:
    """Linearly interpolate between ``a`` (t=0) and ``b`` (t=1)."""
    return (1.0 - t) * a + t * b


def clamp(value: float, low: float, high: float) -> float:
    """Clamp ``value`` to ``[low, high]``."""
    if value < low:
        return low
    if value > high:
        return high
    return value


def radians(deg: float) -> float:
    return (math.pi / 180.0) * deg


def degrees(rad: float) -> float:
    return (180.0 / math.pi) * rad


def safe_sqrt(x: float) -> float:
    """Square root that treats tiny negative round-off as zero."""
    return math.sqrt(max(0.0, x))


def safe_acos(x: float) -> float:
    return math.acos(clamp(x, -1.0, 1.0))


def quadratic(a: float, b: float, c: float) -> tuple[bool, float, float]:
    """Solve ``a*t^2 + b*t + c = 0`` with the sign-stable formula.

    The root computed with ``-b - sign(b) * sqrt(disc)`` never subtracts two
    nearly equal quantities; the other root is recovered from ``c / q``.

    Args:
        a: Quadratic coefficient.
        b: Linear coefficient.
        c: Constant term.

    Returns:
        Tuple ``(found, t0, t1)`` with ``t0 <= t1``. ``found`` is False when the
        discriminant is negative, in which case both roots are 0.
    """
    discrim = b * b - 4.0 * a * c
    if discrim < 0.0:
        return False, 0.0, 0.0
    root_discrim = math.sqrt(discrim)

    if b < 0.0:
        q = -0.5 * (b - root_discrim)
    else:
        q = -0.5 * (b + root_discrim)

    if q == 0.0:
        # b == 0 and c == 0: double root at zero
        if a == 0.0:
            return False, 0.0, 0.0
        return True, 0.0, 0.0

    t0 = q * reciprocal(a)
    t1 = c / q
    if t0 > t1:
        t0, t1 = t1, t0
    return True, t0, t1
