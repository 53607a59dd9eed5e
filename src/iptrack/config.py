"""Configuration primitives for the tracker."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_OUTPUT = Path("iptrack.out")


@dataclass(slots=True)
class TrackerConfig:
    """Settings for a single tracing run."""

    output_path: Path = DEFAULT_OUTPUT
    # Ceiling on observed samples; ``None`` disables the guard.
    max_samples: Optional[int] = None

    def __post_init__(self) -> None:
        self.output_path = Path(self.output_path)
        if self.max_samples is not None and self.max_samples < 0:
            raise ValueError(f"max_samples must be non-negative, got {self.max_samples}")
