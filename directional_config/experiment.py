"""
Experiment-level configuration: trial counts, timing, attention checks and output.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional
from datetime import datetime

from .modes import FOUR_DIRECTIONS, BINARY_DIRECTIONS, UP, DOWN


VARIANT_FOUR_DIRECTION = 'four-direction'
VARIANT_UP_DOWN = 'up-down'
VARIANTS = (VARIANT_FOUR_DIRECTION, VARIANT_UP_DOWN)


@dataclass
class PhaseTimings:
    """
    Durations of every timed step, in seconds.

    Attributes:
        rest_min: Lower bound of the randomized rest period
        rest_max: Upper bound of the randomized rest period
        concentration: Focus circle before the cue
        cue: Direction cue display
        action: Mental task period
        relax: Post-action relaxation (0 skips the visible pause)
        mode_announcement: Total countdown before the first trial (1 s steps)
        check_feedback: How long attention-check feedback stays on screen
    """
    rest_min: float = 1.5
    rest_max: float = 2.0
    concentration: float = 0.5
    cue: float = 0.5
    action: float = 2.5
    relax: float = 1.0
    mode_announcement: float = 3.0
    check_feedback: float = 2.5

    def __post_init__(self):
        """Validate timing parameters."""
        for name, value in asdict(self).items():
            if value < 0:
                raise ValueError(f"{name} must be non-negative")

        if self.rest_min > self.rest_max:
            raise ValueError("rest_min must not exceed rest_max")

    def trial_duration(self) -> float:
        """Expected duration of one trial using the mean rest period."""
        rest = (self.rest_min + self.rest_max) / 2.0
        return rest + self.concentration + self.cue + self.action + self.relax

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PhaseTimings':
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class ExperimentConfig:
    """
    Complete configuration of one directional-thought session.

    Attributes:
        name: Experiment name/identifier
        variant: 'four-direction' (independent draws over four directions)
                 or 'up-down' (balanced up/down counts)
        total_trials: Number of trials in the four-direction variant
        up_trials: Number of 'up' trials in the up-down variant
        down_trials: Number of 'down' trials in the up-down variant
        randomize_order: Shuffle the balanced sequence (up-down variant)
        check_probability: Fraction of trials followed by an attention check
        check_timeout: Seconds to wait for an answer (None = wait indefinitely)
        strict_checks: Raise when a second attention check is requested concurrently
        require_device: Refuse to start without a connected signal device
        sample_interval: Seconds between brainwave samples while a trial records
        output_directory: Where session records are written
        lsl_markers_enabled: Push event markers to an LSL outlet
        marker_stream_name: Name of the LSL marker stream
        seed: Random seed for reproducible sequences (None = system entropy)
        timings: Phase durations
        metadata: Additional metadata (creation date, version, etc.)
    """
    name: str = "Directional Thought Experiment"
    variant: str = VARIANT_FOUR_DIRECTION
    total_trials: int = 40
    up_trials: int = 10
    down_trials: int = 10
    randomize_order: bool = True
    check_probability: float = 0.15
    check_timeout: Optional[float] = None
    strict_checks: bool = True
    require_device: bool = False
    sample_interval: float = 0.25
    output_directory: str = "data"
    lsl_markers_enabled: bool = False
    marker_stream_name: str = "DirectionalMarkers"
    seed: Optional[int] = None
    timings: PhaseTimings = field(default_factory=PhaseTimings)
    metadata: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        """Validate parameters and fill in metadata defaults."""
        if isinstance(self.timings, dict):
            self.timings = PhaseTimings.from_dict(self.timings)

        if self.variant not in VARIANTS:
            raise ValueError(f"variant must be one of {VARIANTS}, got {self.variant!r}")

        if self.variant == VARIANT_UP_DOWN:
            if self.up_trials < 0 or self.down_trials < 0:
                raise ValueError("up_trials and down_trials must be non-negative")
            self.total_trials = self.up_trials + self.down_trials

        if self.total_trials < 0:
            raise ValueError("total_trials must be non-negative")

        if not 0.0 <= self.check_probability <= 1.0:
            raise ValueError("check_probability must be between 0 and 1")

        if self.check_timeout is not None and self.check_timeout <= 0:
            raise ValueError("check_timeout must be positive or None")

        if self.sample_interval <= 0:
            raise ValueError("sample_interval must be positive")

        if 'created' not in self.metadata:
            self.metadata['created'] = datetime.now().isoformat()
        if 'version' not in self.metadata:
            self.metadata['version'] = '1.0'

    @classmethod
    def up_down(cls, **overrides) -> 'ExperimentConfig':
        """
        Balanced up/down inner-speech protocol.

        Rest and the preparation screen are merged into a fixed 4 s rest, there
        is no relax phase and no attention checks, and a device is mandatory.
        """
        params = dict(
            name="Up-Down Inner Speech",
            variant=VARIANT_UP_DOWN,
            up_trials=10,
            down_trials=10,
            check_probability=0.0,
            require_device=True,
            timings=PhaseTimings(rest_min=4.0, rest_max=4.0, concentration=0.5,
                                 cue=1.0, action=3.0, relax=0.0),
        )
        params.update(overrides)
        return cls(**params)

    @property
    def directions(self) -> List[str]:
        """Direction vocabulary for this variant."""
        if self.variant == VARIANT_UP_DOWN:
            return list(BINARY_DIRECTIONS)
        return list(FOUR_DIRECTIONS)

    @property
    def balanced(self) -> bool:
        """True when trial directions are pre-generated with fixed counts."""
        return self.variant == VARIANT_UP_DOWN

    def direction_counts(self) -> Optional[Dict[str, int]]:
        if not self.balanced:
            return None
        return {UP: self.up_trials, DOWN: self.down_trials}

    def get_estimated_duration(self) -> float:
        """Approximate session length in seconds (excluding attention checks)."""
        return self.timings.mode_announcement + self.total_trials * self.timings.trial_duration()

    def validate(self) -> List[str]:
        """
        Check the configuration for problems that do not prevent construction.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []
        if self.total_trials == 0:
            errors.append("Experiment has no trials")
        if not self.output_directory:
            errors.append("Output directory is not set")
        if self.lsl_markers_enabled and not self.marker_stream_name:
            errors.append("Marker stream name is required when LSL markers are enabled")
        return errors

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['timings'] = self.timings.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExperimentConfig':
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if 'timings' in known and isinstance(known['timings'], dict):
            known['timings'] = PhaseTimings.from_dict(known['timings'])
        if 'metadata' in known:
            known['metadata'] = dict(known['metadata'] or {})
        return cls(**known)

    def __str__(self) -> str:
        return (f"ExperimentConfig(name='{self.name}', variant={self.variant}, "
                f"trials={self.total_trials}, check_probability={self.check_probability})")
