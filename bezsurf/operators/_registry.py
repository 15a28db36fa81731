"""
Dispatch tables for per-patch routines.

The integration engine never branches on patch type itself: each
``PatchType`` value is registered with the routine that samples that kind
of patch, and the quadrature code looks the routine up by the type of the
patch the iterator yields.  Adding a patch type means registering one
more sampler.

Usage
-----
    segment_samplers = MethodRegistry("segment sampler")
    segment_samplers.register(PatchType.CUBIC_PATCH.value, sample_cubic_patch)
    points, normals, weights = segment_samplers[ptype.value](pts, n)
"""

from typing import Callable


class MethodRegistry:
    """Table of routines keyed by patch type (or any other string key).

    Parameters
    ----------
    name : str
        What the routines are, used in lookup errors (e.g. "segment sampler").
    """

    def __init__(self, name: str):
        self.name = name
        self._methods: dict[str, Callable] = {}

    def register(self, key: str, fn: Callable) -> None:
        """Register ``fn`` for ``key``, replacing any earlier entry."""
        self._methods[key] = fn

    def __getitem__(self, key: str) -> Callable:
        try:
            return self._methods[key]
        except KeyError:
            raise KeyError(
                f"Unknown {self.name}: {key!r}. "
                f"Registered keys: {self.available()}"
            ) from None

    def __contains__(self, key: str) -> bool:
        return key in self._methods

    def available(self) -> list[str]:
        """Registered keys in registration order."""
        return list(self._methods)
