"""Configuration for the message center."""

import math
import os
from dataclasses import dataclass
from typing import Any
from typing import Mapping
from typing import Optional

DEFAULT_MAX_LISTENERS = 10
ENV_MAX_LISTENERS = "MCENTER_MAX_LISTENERS"


def clamp_max_listeners(value: Any) -> int:
    """
    Normalize a concurrency ceiling.

    Missing, falsy, unparseable and non-finite values fall back to the
    default. Numeric strings are accepted, fractions are truncated toward
    zero and the result is never below 1.
    """
    try:
        number = float(value or DEFAULT_MAX_LISTENERS)
    except (TypeError, ValueError):
        number = DEFAULT_MAX_LISTENERS

    if not math.isfinite(number):
        number = DEFAULT_MAX_LISTENERS

    return max(1, int(number))


@dataclass(frozen=True)
class MessageCenterConfig(object):
    max_listeners: int = DEFAULT_MAX_LISTENERS
    """How many published items may be dispatched at the same time."""

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "max_listeners", clamp_max_listeners(self.max_listeners)
        )

    @classmethod
    def from_mapping(cls, cnf: Optional[Mapping[str, Any]]) -> "MessageCenterConfig":
        """
        Read the {'mcenter': {'maxListeners': N}} shape used by application
        config files.
        """
        section = (cnf or {}).get("mcenter") or {}
        return cls(max_listeners=section.get("maxListeners"))

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "MessageCenterConfig":
        """Read MCENTER_MAX_LISTENERS from environ (os.environ by default)."""
        if environ is None:
            environ = os.environ

        return cls(max_listeners=environ.get(ENV_MAX_LISTENERS))
