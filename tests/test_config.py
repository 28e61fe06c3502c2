"""Unit tests for the configuration loader."""

from pathlib import Path

import pytest

from scanmd.config import MIB, PipelineConfig, load_config
from scanmd.errors import ConfigurationError


def test_load_config(tmp_path: Path) -> None:
    yaml_content = """
provider: tesseract
api_key: secret
output_dir: results
output_prefix: scan_
chunk_threshold_mb: 10
lang: ron
dpi: 200
tess_psm: 4
"""
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(yaml_content)
    cfg = load_config(cfg_path)
    assert cfg.provider == "tesseract"
    assert cfg.api_key == "secret"
    assert cfg.output_dir == Path("results")
    assert cfg.output_prefix == "scan_"
    assert cfg.chunk_threshold_bytes == 10 * MIB
    assert cfg.tess_psm == 4


def test_defaults() -> None:
    cfg = PipelineConfig(api_key="k")
    assert cfg.provider == "mistral"
    assert cfg.chunk_threshold_mb == 45.0
    assert cfg.output_prefix == "ocr_results_"


def test_api_key_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SCANMD_API_KEY", "from-env")
    assert PipelineConfig().api_key == "from-env"


def test_unknown_key_rejected(tmp_path: Path) -> None:
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text("provider: mistral\nbogus: 1\n")
    with pytest.raises(ConfigurationError, match="bogus"):
        load_config(cfg_path)


@pytest.mark.parametrize("field,value", [("chunk_threshold_mb", 0), ("tess_psm", 14), ("channel_size", 0)])
def test_invalid_values(field: str, value: int) -> None:
    with pytest.raises(ConfigurationError):
        PipelineConfig(**{field: value})


def test_replace_ignores_none() -> None:
    cfg = PipelineConfig(api_key="k", provider="tesseract")
    updated = cfg.replace(provider=None, chunk_threshold_mb=1.5)
    assert updated.provider == "tesseract"
    assert updated.chunk_threshold_mb == 1.5
