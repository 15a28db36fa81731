"""
Compensated (Kahan) summation of scalars or fixed-shape arrays.
"""

import numpy as np


class KahanAccumulator:
    """Running sum with Kahan compensation.

    Parameters
    ----------
    shape : tuple
        Shape of the summed values; ``()`` for scalars.  Array values are
        compensated elementwise.

    Examples
    --------
    >>> acc = KahanAccumulator()
    >>> acc.add_all([0.1] * 10)
    >>> acc.sum
    1.0
    """

    def __init__(self, shape=()):
        self._sum = np.zeros(shape)
        self._c = np.zeros(shape)

    def add(self, value):
        """Add ``value`` (scalar or array of the accumulator's shape)."""
        y = np.asarray(value, dtype=float) - self._c
        t = self._sum + y
        self._c = (t - self._sum) - y
        self._sum = t

    def add_all(self, values):
        """Add every entry of an iterable."""
        for value in values:
            self.add(value)

    @property
    def sum(self):
        """Current total; a float for scalar accumulators."""
        if self._sum.shape == ():
            return float(self._sum)
        return self._sum.copy()

    def __add__(self, other: "KahanAccumulator") -> "KahanAccumulator":
        """Combine two partial sums (plain addition of the totals)."""
        if self._sum.shape != other._sum.shape:
            raise ValueError(f"cannot combine accumulators of shapes "
                             f"{self._sum.shape} and {other._sum.shape}")
        out = KahanAccumulator(self._sum.shape)
        out._sum = self._sum + other._sum
        out._c = self._c + other._c
        return out

    def __repr__(self):
        return f"KahanAccumulator(sum={self._sum!r})"
