"""Arena file schemas and loading for Knowledge Arena."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from knowledge_arena.attribution.metrics import QualityMetrics
from knowledge_arena.attribution.shapley import DEFAULT_MAX_EXACT_PLAYERS, DEFAULT_SAMPLES
from knowledge_arena.core.errors import UnknownSourceError
from knowledge_arena.ranking.glicko2 import (
    DEFAULT_DEVIATION,
    DEFAULT_RATING,
    DEFAULT_VOLATILITY,
    Rating,
)


class RatingConfig(BaseModel):
    """Stored Glicko-2 state of a source."""

    mu: float = DEFAULT_RATING
    phi: float = Field(default=DEFAULT_DEVIATION, gt=0)
    sigma: float = Field(default=DEFAULT_VOLATILITY, gt=0)

    def to_rating(self) -> Rating:
        return Rating(mu=self.mu, phi=self.phi, sigma=self.sigma)


class MetricsConfig(BaseModel):
    """Quality metrics supplied for a source (each 0-1)."""

    accuracy: float = Field(ge=0, le=1)
    readability: float = Field(ge=0, le=1)
    depth: float = Field(ge=0, le=1)
    objectivity: float = Field(ge=0, le=1)
    citations: float = Field(ge=0, le=1)

    def to_metrics(self) -> QualityMetrics:
        return QualityMetrics(**self.model_dump())


class SourceConfig(BaseModel):
    """A competing knowledge source."""

    slug: str
    name: str | None = None
    rating: RatingConfig = Field(default_factory=RatingConfig)
    metrics: MetricsConfig | None = None
    win_rate: float | None = Field(default=None, ge=0, le=100)

    @field_validator("slug")
    @classmethod
    def validate_slug_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            msg = "Source slugs cannot be empty"
            raise ValueError(msg)
        return v.strip()

    @property
    def display_name(self) -> str:
        return self.name or self.slug


class MatchConfig(BaseModel):
    """One recorded vote between two sources."""

    a: str
    b: str
    winner: Literal["a", "b", "tie", "both_bad"]

    @field_validator("winner", mode="before")
    @classmethod
    def normalize_winner(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="after")
    def validate_distinct_sources(self) -> MatchConfig:
        if self.a == self.b:
            msg = f"A source cannot play itself ('{self.a}')"
            raise ValueError(msg)
        return self


class AttributionConfig(BaseModel):
    """Shapley estimator settings.

    Attributes:
        mode: "auto" enumerates exactly up to ``max_exact_players`` sources
            and samples permutations beyond that.
        max_exact_players: Largest blend enumerated exactly in auto mode.
        samples: Permutations drawn by the sampled estimator.
        seed: Seed for permutation sampling. None draws fresh entropy.
    """

    mode: Literal["auto", "exact", "sampled"] = "auto"
    max_exact_players: int = Field(default=DEFAULT_MAX_EXACT_PLAYERS, ge=0)
    samples: int = Field(default=DEFAULT_SAMPLES, ge=1)
    seed: int | None = 42


class ArenaConfig(BaseModel):
    """Complete arena file."""

    sources: list[SourceConfig] = Field(..., min_length=1)
    matches: list[MatchConfig] = Field(default_factory=list)
    idle_sources: list[str] = Field(default_factory=list)
    attribution: AttributionConfig = Field(default_factory=AttributionConfig)

    @model_validator(mode="after")
    def validate_references(self) -> ArenaConfig:
        """Ensure slugs are unique and every reference points at a declared source."""
        slugs = [s.slug for s in self.sources]
        duplicates = sorted({s for s in slugs if slugs.count(s) > 1})
        if duplicates:
            msg = f"Duplicate source slugs: {', '.join(duplicates)}"
            raise ValueError(msg)

        known = set(slugs)
        for index, match in enumerate(self.matches):
            for side in (match.a, match.b):
                if side not in known:
                    msg = f"Match {index} references unknown source '{side}'"
                    raise ValueError(msg)
        for slug in self.idle_sources:
            if slug not in known:
                msg = f"Idle source '{slug}' is not declared"
                raise ValueError(msg)
        return self

    def get_source(self, slug: str) -> SourceConfig:
        """Look up a declared source by slug."""
        for source in self.sources:
            if source.slug == slug:
                return source
        raise UnknownSourceError(slug)


def load_config(path: str | Path) -> ArenaConfig:
    """Load and validate an arena file.

    Args:
        path: Path to YAML arena file.

    Returns:
        Validated ArenaConfig instance.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        pydantic.ValidationError: If the file is invalid.
    """
    config_path = Path(path)
    if not config_path.exists():
        msg = f"Arena file not found: {config_path}"
        raise FileNotFoundError(msg)

    with config_path.open() as f:
        data = yaml.safe_load(f)

    return ArenaConfig.model_validate(data or {})
