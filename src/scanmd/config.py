"""Configuration loading and validation for the scan→Markdown pipeline.

The configuration is stored in a YAML file.  The :class:`PipelineConfig`
dataclass captures the relevant fields with sensible defaults and performs
basic validation.  A utility function :func:`load_config` reads a YAML file
and returns the corresponding dataclass instance.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import yaml

from .errors import ConfigurationError

API_KEY_ENV = "SCANMD_API_KEY"

MIB = 1024 * 1024


@dataclass
class PipelineConfig:
    """Dataclass capturing configuration parameters for a pipeline run.

    The fields map one‑to‑one to keys in the YAML configuration.  If
    certain fields are omitted in the YAML file, defaults provided here
    will be used instead.
    """

    provider: str = "mistral"
    api_key: Optional[str] = None
    output_dir: Path = Path(".")
    output_prefix: str = "ocr_results_"
    chunk_threshold_mb: float = 45.0
    request_timeout: float = 300.0
    base_url: str = "https://api.mistral.ai/v1"
    model: str = "mistral-ocr-latest"
    lang: str = "eng"
    dpi: int = 300
    tess_psm: int = 6
    channel_size: int = 100

    def __post_init__(self) -> None:
        # normalise output path to a Path instance
        if isinstance(self.output_dir, str):
            self.output_dir = Path(self.output_dir)
        if self.api_key is None:
            self.api_key = os.environ.get(API_KEY_ENV) or None
        if not self.provider or not isinstance(self.provider, str):
            raise ConfigurationError("provider must be a non-empty string")
        if self.chunk_threshold_mb <= 0:
            raise ConfigurationError(f"chunk_threshold_mb must be positive, got {self.chunk_threshold_mb}")
        if self.request_timeout <= 0:
            raise ConfigurationError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.dpi <= 0:
            raise ConfigurationError(f"dpi must be positive, got {self.dpi}")
        if self.tess_psm not in range(0, 14):
            raise ConfigurationError(f"tess_psm must be between 0 and 13 inclusive, got {self.tess_psm}")
        if self.channel_size <= 0:
            raise ConfigurationError(f"channel_size must be positive, got {self.channel_size}")

    @property
    def chunk_threshold_bytes(self) -> int:
        return int(self.chunk_threshold_mb * MIB)

    def replace(self, **changes) -> "PipelineConfig":
        """Return a copy with ``changes`` applied, skipping ``None`` values."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return dataclasses.replace(self, **changes)


def load_config(path: Union[str, Path]) -> PipelineConfig:
    """Load a configuration YAML file into a :class:`PipelineConfig`.

    Parameters
    ----------
    path:
        Path to the YAML configuration file.

    Returns
    -------
    PipelineConfig
        A populated configuration dataclass instance.
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigurationError(f"Cannot read configuration {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration {path} must be a mapping")

    known = {f.name for f in dataclasses.fields(PipelineConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

    return PipelineConfig(**data)
