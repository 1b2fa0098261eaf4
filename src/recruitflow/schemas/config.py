"""Pydantic configuration schema for YAML input."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class ScoringSettings(BaseModel):
    tie_break: Literal["shared", "written_test", "application_date"] | None = None
    interview_max_total: float | None = Field(default=None, gt=0)

    model_config = ConfigDict(extra="forbid")


class StorageSettings(BaseModel):
    retries: int | None = Field(default=None, ge=0, le=1)

    model_config = ConfigDict(extra="forbid")


class ComplianceSettings(BaseModel):
    min_references: int | None = Field(default=None, ge=2)

    model_config = ConfigDict(extra="forbid")


class SearchSettings(BaseModel):
    min_similarity: float | None = Field(default=None, ge=0, le=100)
    limit: int | None = Field(default=None, ge=1)

    model_config = ConfigDict(extra="forbid")


class StageDefaults(BaseModel):
    shortlisting: dict[str, float] | None = None
    written_test: dict[str, float] | None = None
    interview: dict[str, float] | None = None

    model_config = ConfigDict(extra="forbid")


class AppConfig(BaseModel):
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    compliance: ComplianceSettings = Field(default_factory=ComplianceSettings)
    stages: StageDefaults = Field(default_factory=StageDefaults)
    search: SearchSettings = Field(default_factory=SearchSettings)

    model_config = ConfigDict(extra="forbid")

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        for section in ("scoring", "storage", "compliance", "stages", "search"):
            values = getattr(self, section).model_dump(exclude_none=True)
            if values:
                settings[section] = values
        return settings


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
