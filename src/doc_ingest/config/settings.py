"""Pydantic settings models for document ingestion configuration.

Two settings classes load from separate YAML config files with environment
variable override support. Source priority (highest to lowest):

    1. Explicit constructor arguments (e.g., ParseOptions(enable_ocr=False))
    2. Environment variables (with prefix, e.g., INGEST_TIMEOUT_MS)
    3. .env file
    4. YAML config file (e.g., config/ingest.yaml)
    5. Default values defined here

Config paths are resolved relative to PROJECT_ROOT so the application works
regardless of the current working directory.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

# Resolve project root: settings.py -> config/ -> doc_ingest/ -> src/ -> repo root
PROJECT_ROOT = Path(__file__).resolve().parents[3]

_CONFIG_DIR = PROJECT_ROOT / "config"
_ENV_FILE = PROJECT_ROOT / ".env"


class ParseOptions(BaseSettings):
    """Extraction pipeline behaviour: time budget, OCR, acceptance thresholds."""

    timeout_ms: int = Field(default=30_000, gt=0)
    max_pages: int = Field(default=50, gt=0)
    enable_ocr: bool = True
    ocr_language: str = "eng"

    # Acceptance policy: quantity (word count) overrides quality (score)
    min_quality_score: float = Field(default=0.35, ge=0.0, le=1.0)
    min_word_count: int = Field(default=30, ge=0)
    low_bar_word_count: int = Field(default=10, ge=0)
    ocr_trigger_score: float = Field(default=0.2, ge=0.0, le=1.0)

    # PDF text-layer probe
    text_layer_sample_pages: int = Field(default=3, gt=0)
    text_layer_item_threshold: int = Field(default=20, ge=0)

    pdf_engine: Literal["pymupdf", "pdfplumber"] = "pymupdf"
    tesseract_cmd: str = "tesseract"

    model_config = SettingsConfigDict(
        yaml_file=str(_CONFIG_DIR / "ingest.yaml"),
        env_file=str(_ENV_FILE),
        env_prefix="INGEST_",
        extra="ignore",
    )

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @property
    def ocr_min_words(self) -> float:
        """Word count at which an OCR result becomes final."""
        return max(self.low_bar_word_count, self.min_word_count / 2)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


class PipelineSettings(BaseSettings):
    """Pipeline operations: logging locations and markdown output directory."""

    output_dir: str = "data/extracted"
    log_dir: str = "logs"
    log_max_bytes: int = 10_485_760  # 10MB
    log_backup_count: int = 5

    model_config = SettingsConfigDict(
        yaml_file=str(_CONFIG_DIR / "pipeline.yaml"),
        env_prefix="PIPELINE_",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )
