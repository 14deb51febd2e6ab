"""Configuration models."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_WEIGHTS = {
    "cve": 0.45,
    "text": 0.20,
    "threat_actor": 0.11,
    "malware": 0.11,
    "product": 0.07,
    "company": 0.06,
}


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("cyberdedup", description="Database name")
    user: str = Field("cyberdedup_user", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")


class ScoringWeights(BaseModel):
    """Weight of each similarity dimension."""

    cve: float = Field(DEFAULT_WEIGHTS["cve"], ge=0.0, le=1.0)
    text: float = Field(DEFAULT_WEIGHTS["text"], ge=0.0, le=1.0)
    threat_actor: float = Field(DEFAULT_WEIGHTS["threat_actor"], ge=0.0, le=1.0)
    malware: float = Field(DEFAULT_WEIGHTS["malware"], ge=0.0, le=1.0)
    product: float = Field(DEFAULT_WEIGHTS["product"], ge=0.0, le=1.0)
    company: float = Field(DEFAULT_WEIGHTS["company"], ge=0.0, le=1.0, validate_default=True)

    @field_validator("company")
    @classmethod
    def validate_weights(cls, v: float, info) -> float:
        """Validate that weights sum to 1.0."""
        others = ("cve", "text", "threat_actor", "malware", "product")
        if any(name not in info.data for name in others):
            # Another weight already failed its own bounds check
            return v

        total = v + sum(info.data[name] for name in others)
        if abs(total - 1.0) > 0.001:
            raise ValueError(f"Weights must sum to 1.0, got {total}")
        return v


class Thresholds(BaseModel):
    """Score thresholds separating NEW, BORDERLINE and UPDATE."""

    borderline: float = Field(0.35, description="Lowest BORDERLINE score", ge=0.0, le=1.0)
    update: float = Field(
        0.70, description="Lowest UPDATE score", ge=0.0, le=1.0, validate_default=True
    )

    @field_validator("update")
    @classmethod
    def validate_order(cls, v: float, info) -> float:
        """Validate that the borderline threshold is below the update threshold."""
        if "borderline" not in info.data:
            return v

        borderline = info.data["borderline"]
        if borderline >= v:
            raise ValueError(
                f"Borderline threshold ({borderline}) must be below update threshold ({v})"
            )
        return v


class ScoringConfig(BaseModel):
    """Similarity scoring and classification configuration."""

    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    thresholds: Thresholds = Field(default_factory=Thresholds)
    lookback_days: int = Field(30, description="Candidate lookback window in days", ge=1)
    tie_break: Literal["most_recent", "oldest"] = Field(
        "most_recent", description="Which candidate wins a score tie"
    )


class ArbitrationConfig(BaseModel):
    """Arbitration of BORDERLINE cases."""

    enabled: bool = Field(True, description="Send BORDERLINE cases to the LLM")
    timeout_seconds: float = Field(30.0, description="Per-call timeout", gt=0.0)
    max_retries: int = Field(2, description="Retries after transient failures", ge=0, le=10)


class LLMConfig(BaseModel):
    """LLM provider configuration."""

    provider: str = Field("openai", description="LLM provider (openai, mock)")
    model: str = Field("gpt-4o-mini", description="Model name")
    api_key_env: Optional[str] = Field("OPENAI_API_KEY", description="Environment variable for API key")
    api_key: Optional[str] = Field(None, description="API key (prefer api_key_env)")
    base_url: Optional[str] = Field(None, description="Base URL for API (e.g., for Ollama)")


class ConfigModel(BaseModel):
    """Main configuration model."""

    workspace_root: str = Field("~/cyberdedup", description="Root directory for run reports")
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    arbitration: ArbitrationConfig = Field(default_factory=ArbitrationConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
