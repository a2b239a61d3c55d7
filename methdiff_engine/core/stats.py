#!/usr/bin/env python
# coding: utf-8

"""
Exact Greater-Proportion Test
Log-space hypergeometric tail probability for two methylation count pairs
"""

from typing import Optional

import numpy as np
from scipy.special import gammaln


# ============================================================================
# LOG-SPACE HELPERS
# ============================================================================


def log_binom(n: float, k: float) -> float:
    """
    Natural log of the binomial coefficient C(n, k) via log-gamma.

    Boundary terms ``k == 0`` and ``k == n`` evaluate to 0. Degenerate
    arguments (e.g. ``n < 0``) are not guarded and may return non-finite
    values.
    """
    return float(gammaln(n + 1) - gammaln(k + 1) - gammaln(n - k + 1))


def log_sum_log(p: Optional[float], q: float) -> float:
    """
    Add two probabilities held in log space.

    Parameters
    ----------
    p : float or None
        Running log-total; ``None`` means no terms have been added yet
    q : float
        New log term

    Returns
    -------
    float
        log(exp(p) + exp(q))
    """
    if p is None:
        return q
    larger, smaller = (p, q) if p > q else (q, p)
    return float(larger + np.log1p(np.exp(smaller - larger)))


def log_hyper_g_greater(
    meth_a: int, unmeth_a: int, meth_b: int, unmeth_b: int, k: int
) -> float:
    """Log probability of ``k`` methylated draws falling on the B side."""
    return (
        log_binom(meth_b + unmeth_b - 1, k)
        + log_binom(meth_a + unmeth_a - 1, meth_a + meth_b - 1 - k)
        - log_binom(meth_a + unmeth_a + meth_b + unmeth_b - 2, meth_a + meth_b - 1)
    )


# ============================================================================
# GREATER-PROPORTION TEST
# ============================================================================


def probability_greater(meth_a: int, unmeth_a: int, meth_b: int, unmeth_b: int) -> float:
    """
    Probability that the methylation level behind pair B exceeds pair A.

    The terms summed are the lower tail ``P(K <= meth_b - 1)`` of a
    hypergeometric ``K`` with population ``meth_a + unmeth_a + meth_b +
    unmeth_b - 2``, ``meth_b + unmeth_b - 1`` successes and
    ``meth_a + meth_b - 1`` draws, accumulated in log space.

    Parameters
    ----------
    meth_a, unmeth_a : int
        Methylated / unmethylated reads of the reference pair
    meth_b, unmeth_b : int
        Methylated / unmethylated reads of the pair tested as greater

    Returns
    -------
    float
        Probability in [0, 1]. An empty summation range (``meth_b == 0``)
        returns 0.0. Non-finite values from degenerate counts are returned
        unchanged.

    Examples
    --------
    >>> round(probability_greater(1, 1, 1, 1), 4)
    0.5
    >>> probability_greater(3, 7, 8, 2) > 0.9
    True
    """
    total = None
    for k in range(max(0, meth_b - unmeth_a), meth_b):
        total = log_sum_log(
            total, log_hyper_g_greater(meth_a, unmeth_a, meth_b, unmeth_b, k)
        )

    if total is None:
        return 0.0
    return float(np.exp(total))
