"""Pydantic configuration for revenue_analysis."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from revenue_analysis.exceptions import ConfigError
from revenue_analysis.months import parse_month
from revenue_analysis.processors import ALL_PROCESSORS, Processor, parse_processor, parse_scope

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")

SUPPORTED_SUFFIXES = (".csv", ".xlsx", ".xlsm", ".xls")

DateRange = Literal["all", "current", "3months", "6months", "12months", "custom"]


class OutputConfig(BaseModel):
    """Output format toggles."""

    excel: bool = True


class AtRiskConfig(BaseModel):
    """Decline thresholds (percent) for at-risk merchant tiers."""

    min_decline_pct: float = 5.0
    high_decline_pct: float = 25.0
    critical_decline_pct: float = 50.0
    critical_consecutive_decline_pct: float = 20.0
    limit: int | None = 10


class ForecastConfig(BaseModel):
    """Linear-trend revenue forecast settings."""

    window: int = Field(default=6, ge=2)
    horizon: int = Field(default=3, ge=1)
    min_months: int = Field(default=3, ge=2)


class Settings(BaseModel):
    """Application configuration -- immutable after creation."""

    model_config = {"frozen": True, "extra": "forbid"}

    data_files: list[Path] = Field(default_factory=list)
    leads_file: Path | None = None
    processor: Processor | None = None
    month: str | None = None
    scope: str = ALL_PROCESSORS
    date_range: DateRange = "all"
    start_month: str | None = None
    end_month: str | None = None
    output_dir: Path = Path("output/")
    client_name: str | None = None
    outputs: OutputConfig = OutputConfig()
    top_n: int = 10
    concentration_top_n: int = 10
    concentration_medium_pct: float = 25.0
    concentration_high_pct: float = 40.0
    trending_limit: int = 5
    at_risk: AtRiskConfig = AtRiskConfig()
    forecast: ForecastConfig = ForecastConfig()

    @field_validator("data_files", mode="before")
    @classmethod
    def expand_and_validate_data_files(cls, v: list[str | Path] | str | Path | None) -> list[Path]:
        if v is None:
            return []
        if isinstance(v, (str, Path)):
            v = [v]
        paths: list[Path] = []
        for item in v:
            p = Path(item).expanduser().resolve()
            if not p.exists():
                raise ValueError(f"Data file not found: {p}")
            if p.suffix.lower() not in SUPPORTED_SUFFIXES:
                raise ValueError(f"Unsupported file type: {p.suffix}")
            paths.append(p)
        return paths

    @field_validator("leads_file", mode="before")
    @classmethod
    def expand_and_validate_leads_file(cls, v: str | Path | None) -> Path | None:
        if v is None:
            return None
        p = Path(v).expanduser().resolve()
        if not p.exists():
            raise ValueError(f"Leads file not found: {p}")
        if p.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise ValueError(f"Unsupported leads file type: {p.suffix}")
        return p

    @field_validator("processor", mode="before")
    @classmethod
    def validate_processor(cls, v: str | Processor | None) -> Processor | None:
        if v is None:
            return None
        return parse_processor(v)

    @field_validator("scope", mode="before")
    @classmethod
    def validate_scope(cls, v: str | Processor) -> str:
        return parse_scope(v)

    @field_validator("month", "start_month", "end_month", mode="before")
    @classmethod
    def normalize_month(cls, v: str | None) -> str | None:
        if v is None or v == "":
            return None
        month = parse_month(v)
        if month is None:
            raise ValueError(f"Unrecognized month: {v!r}")
        return month

    @field_validator("output_dir", mode="before")
    @classmethod
    def expand_output_dir(cls, v: str | Path) -> Path:
        return Path(v).expanduser().resolve()

    @model_validator(mode="after")
    def check_custom_range(self) -> Settings:
        if self.date_range == "custom" and not (self.start_month and self.end_month):
            raise ValueError("date_range 'custom' requires start_month and end_month")
        if self.concentration_medium_pct > self.concentration_high_pct:
            raise ValueError("concentration_medium_pct must not exceed concentration_high_pct")
        return self

    @classmethod
    def from_yaml(cls, config_path: Path = DEFAULT_CONFIG_PATH, **cli_overrides) -> Settings:
        """Load from YAML, merge CLI overrides (highest priority)."""
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            data = {}
        data.update({k: v for k, v in cli_overrides.items() if v is not None})
        try:
            return cls(**data)
        except Exception as e:
            raise ConfigError(f"Configuration error: {e}") from e

    @classmethod
    def from_args(cls, data_files: list[Path] | None = None, **kwargs) -> Settings:
        """Create settings directly from arguments (no YAML needed)."""
        try:
            return cls(data_files=data_files or [], **kwargs)
        except Exception as e:
            raise ConfigError(f"Configuration error: {e}") from e
