"""Configuration package -- typed, validated settings from YAML + .env."""

from .settings import ParseOptions, PipelineSettings

__all__ = [
    "ParseOptions",
    "PipelineSettings",
    "load_all_settings",
]


def load_all_settings() -> tuple[ParseOptions, PipelineSettings]:
    """Load and return all configuration objects.

    Returns a tuple of (ParseOptions, PipelineSettings), each populated from
    its own YAML file with environment variable overrides.
    """
    return ParseOptions(), PipelineSettings()
