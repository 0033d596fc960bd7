"""
inference/config.py
Tunable parameters for the violation engine.

Every value has a default and can be overridden by keyword or through
PROCTOR_* environment variables (see EngineConfig.from_env). Values are
checked once, before any tick runs; a bad value raises InvalidConfiguration.

Tuning notes:
- required_consecutive counts are in ticks, so they scale with tick_interval.
- restricted objects confirm fastest; an absent subject confirms slowest so
  that blinking, turning or brief occlusion does not raise an alarm.
"""

import math
import os
from dataclasses import dataclass, field, fields
from typing import Dict, FrozenSet, Mapping, Optional

from inference.errors import InvalidConfiguration
from inference.types import Condition

DEFAULT_REQUIRED_CONSECUTIVE = {
    Condition.RESTRICTED_OBJECT: 2,
    Condition.SECONDARY_SUBJECT: 5,
    Condition.SUBJECT_ABSENT: 20,
}

# COCO labels treated as restricted in an exam setting
DEFAULT_RESTRICTED_LABELS = frozenset({
    "cell phone", "book", "laptop", "keyboard", "mouse", "remote", "tv",
})

ENV_PREFIX = "PROCTOR_"


@dataclass
class EngineConfig:
    required_consecutive: Dict[Condition, int] = field(
        default_factory=lambda: dict(DEFAULT_REQUIRED_CONSECUTIVE)
    )
    presence_confidence: float = 0.5
    object_confidence: float = 0.5
    restricted_labels: FrozenSet[str] = DEFAULT_RESTRICTED_LABELS

    # plausibility filter for restricted objects
    area_ratio_min: float = 0.0005
    area_ratio_max: float = 0.6
    aspect_ratio_min: float = 0.15
    aspect_ratio_max: float = 6.0

    debounce_window: float = 5.0  # seconds
    debounced_conditions: FrozenSet[Condition] = frozenset({Condition.RESTRICTED_OBJECT})

    tick_interval: float = 0.1      # seconds between ticks
    context_window: float = 10.0    # seconds bracketing the confirmation instant
    capture_duration: float = 30.0  # seconds before an evidence capture auto-stops
    detector_budget: float = 1.0    # seconds a tick may wait on inference

    def __post_init__(self):
        merged = dict(DEFAULT_REQUIRED_CONSECUTIVE)
        merged.update({Condition(k): v for k, v in self.required_consecutive.items()})
        self.required_consecutive = merged
        self.restricted_labels = frozenset(l.strip().lower() for l in self.restricted_labels)
        self.debounced_conditions = frozenset(Condition(c) for c in self.debounced_conditions)
        self.validate()

    def required(self, condition: Condition) -> int:
        return self.required_consecutive[condition]

    def validate(self) -> None:
        for f in fields(self):
            v = getattr(self, f.name)
            if isinstance(v, float) and not math.isfinite(v):
                raise InvalidConfiguration(f"{f.name} must be finite, got {v}")
        for cond, n in self.required_consecutive.items():
            if not isinstance(n, int) or n < 1:
                raise InvalidConfiguration(f"required_consecutive[{cond.value}] must be an int >= 1, got {n!r}")
        for name in ("presence_confidence", "object_confidence"):
            v = getattr(self, name)
            if not 0.0 <= v <= 1.0:
                raise InvalidConfiguration(f"{name} must be within [0, 1], got {v}")
        if not 0.0 <= self.area_ratio_min <= self.area_ratio_max <= 1.0:
            raise InvalidConfiguration(
                f"area ratio bounds must satisfy 0 <= min <= max <= 1, got "
                f"[{self.area_ratio_min}, {self.area_ratio_max}]"
            )
        if not 0.0 < self.aspect_ratio_min <= self.aspect_ratio_max:
            raise InvalidConfiguration(
                f"aspect ratio bounds must satisfy 0 < min <= max, got "
                f"[{self.aspect_ratio_min}, {self.aspect_ratio_max}]"
            )
        if self.debounce_window < 0:
            raise InvalidConfiguration(f"debounce_window must be >= 0, got {self.debounce_window}")
        for name in ("tick_interval", "context_window", "capture_duration", "detector_budget"):
            v = getattr(self, name)
            if v <= 0:
                raise InvalidConfiguration(f"{name} must be > 0, got {v}")
        if not self.restricted_labels:
            raise InvalidConfiguration("restricted_labels must not be empty")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "EngineConfig":
        """
        Build a config from PROCTOR_* variables, e.g.

            PROCTOR_TICK_INTERVAL=0.2
            PROCTOR_REQUIRED_SUBJECT_ABSENT=30
            PROCTOR_RESTRICTED_LABELS="cell phone,book"
        """
        env = os.environ if environ is None else environ
        kwargs = {}
        try:
            for f in fields(cls):
                key = ENV_PREFIX + f.name.upper()
                if key not in env:
                    continue
                raw = env[key]
                if f.name == "restricted_labels":
                    kwargs[f.name] = frozenset(s for s in raw.split(",") if s.strip())
                elif f.name == "debounced_conditions":
                    kwargs[f.name] = frozenset(Condition(s.strip()) for s in raw.split(",") if s.strip())
                elif f.name == "required_consecutive":
                    continue
                else:
                    kwargs[f.name] = float(raw)
            required = {}
            for cond in Condition:
                key = f"{ENV_PREFIX}REQUIRED_{cond.name}"
                if key in env:
                    required[cond] = int(env[key])
        except ValueError as e:
            raise InvalidConfiguration(f"Bad {ENV_PREFIX}* environment value: {e}")
        if required:
            kwargs["required_consecutive"] = required
        kwargs.update(overrides)
        return cls(**kwargs)
