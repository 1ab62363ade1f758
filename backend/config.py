"""
Dataset Visualization Engine - Configuration

Application configuration using Pydantic Settings.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OllamaSettings(BaseSettings):
    """Ollama LLM configuration used for AI data cleaning."""

    model_config = SettingsConfigDict(env_prefix="OLLAMA_")

    base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama API base URL"
    )
    model: str = Field(
        default="llama3.2:latest",
        description="Model used for data cleaning"
    )
    timeout: float = Field(
        default=120.0,
        description="Request timeout in seconds"
    )
    max_retries: int = Field(
        default=3,
        description="Maximum retry attempts"
    )
    cleaning_chunk_size: int = Field(
        default=25,
        description="Records sent to the model per cleaning request"
    )
    temperature: float = Field(
        default=0.1,
        description="Sampling temperature for cleaning answers"
    )
    max_tokens: int = Field(
        default=4096,
        description="Upper bound on tokens generated per answer"
    )
    retry_backoff: float = Field(
        default=1.0,
        description="Base delay in seconds between retries, doubled each attempt"
    )


class VisualizationSettings(BaseSettings):
    """Type inference and chart shaping configuration."""

    model_config = SettingsConfigDict(env_prefix="VIZ_")

    type_threshold: float = Field(
        default=0.8,
        description="Share of rows that must agree before a column is typed date/number"
    )
    schema_sample_size: int = Field(
        default=100,
        description="Records scanned when unioning column names"
    )
    histogram_bins: int = Field(
        default=20,
        description="Default bin count for distribution charts"
    )
    base_hue: int = Field(
        default=210,
        description="Starting hue for category colors"
    )
    date_label_format: str = Field(
        default="%Y-%m-%d",
        description="strftime format for time series labels"
    )


class ReportSettings(BaseSettings):
    """Report metrics configuration."""

    model_config = SettingsConfigDict(env_prefix="REPORT_")

    top_n: int = Field(
        default=5,
        description="Number of top products reported"
    )
    palette: list[str] = Field(
        default=["#3B82F6", "#10B981", "#6366F1", "#F59E0B", "#EF4444"],
        description="Positional colors for report charts"
    )
    unknown_label: str = Field(
        default="Unknown",
        description="Label used when a record has no product field"
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Application
    app_name: str = "Dataset Visualization Engine"
    app_version: str = "1.0.0"
    debug: bool = Field(default=False, description="Debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # File Upload
    max_file_size_mb: int = Field(
        default=50,
        description="Maximum file size in MB"
    )
    upload_dir: str = Field(
        default="./uploads",
        description="Directory for uploaded datasets"
    )

    # Session
    session_ttl_hours: int = Field(
        default=24,
        description="Dataset time-to-live in hours"
    )

    # Nested settings
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    visualization: VisualizationSettings = Field(default_factory=VisualizationSettings)
    report: ReportSettings = Field(default_factory=ReportSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
