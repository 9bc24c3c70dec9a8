"""Error taxonomy for descentlab."""

from __future__ import annotations


class InvalidConfiguration(ValueError):
    """A builder or sampler was configured with an out-of-range value.

    ``field`` names the offending option and ``value`` carries what was passed.
    """

    def __init__(self, field: str, value: object, requirement: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"{field} {requirement}, got {value!r}")


__all__ = ["InvalidConfiguration"]
