"""Standard normal distribution functions used by the pricing formulas.

The CDF goes through the Abramowitz & Stegun 7.1.26 rational approximation
of erf (max absolute error 1.5e-7) so prices match the dashboard exactly.
"""

import math

_A1 = 0.254829592
_A2 = -0.284496736
_A3 = 1.421413741
_A4 = -1.453152027
_A5 = 1.061405429
_P = 0.3275911

_INV_SQRT_2PI = 1.0 / math.sqrt(2.0 * math.pi)


def erf(x: float) -> float:
    """Error function via Abramowitz & Stegun formula 7.1.26.

    Args:
        x: Any real number

    Returns:
        erf(x), accurate to about 1.5e-7

    Example:
        >>> round(erf(1.0), 6)
        0.842701
    """
    sign = -1.0 if x < 0 else 1.0
    x = abs(x)

    t = 1.0 / (1.0 + _P * x)
    poly = ((((_A5 * t + _A4) * t + _A3) * t + _A2) * t + _A1) * t
    y = 1.0 - poly * math.exp(-x * x)

    return sign * y


def norm_cdf(x: float) -> float:
    """Cumulative standard normal distribution Φ(x) = 0.5·(1 + erf(x/√2))."""
    return 0.5 * (1.0 + erf(x / math.sqrt(2.0)))


def norm_pdf(x: float) -> float:
    """Standard normal density φ(x)."""
    return _INV_SQRT_2PI * math.exp(-0.5 * x * x)
