"""Configuration Pydantic models — pure schema, no infrastructure defaults."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class PipelineConfig(BaseModel):
    segment_duration_ms: int = Field(gt=0)
    sample_rate: int = Field(gt=0)
    activity_threshold: float = Field(ge=0.0)
    pre_emphasis_alpha: float = Field(ge=0.0, le=1.0)
    target_peak: float = Field(gt=0.0, le=1.0)
    recognizer_timeout_ms: int = Field(gt=0)

    @property
    def segment_duration(self) -> float:
        return self.segment_duration_ms / 1000.0

    @property
    def recognizer_timeout(self) -> float:
        return self.recognizer_timeout_ms / 1000.0

    @property
    def segment_samples(self) -> int:
        return self.sample_rate * self.segment_duration_ms // 1000


class RecognizerConfig(BaseModel):
    model: str
    fallback_models: list[str] = Field(default_factory=list)
    language: str

    @model_validator(mode='after')
    def _language_is_primary_subtag(self) -> RecognizerConfig:
        # whisper expects 'zh', not 'zh-TW'
        self.language = self.language.split('-')[0].lower()
        return self

    def model_candidates(self) -> list[str]:
        """Configured model first, then each fallback, without duplicates."""
        return list(dict.fromkeys([self.model, *self.fallback_models]))


class LoggingConfig(BaseModel):
    directory: str
    level: str = 'DEBUG'


class AppConfig(BaseModel):
    pipeline: PipelineConfig
    recognizer: RecognizerConfig
    logging: LoggingConfig
