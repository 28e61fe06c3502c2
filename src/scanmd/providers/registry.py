"""Provider lookup by id, with auto-discovery of the modules in this package."""

from __future__ import annotations

import importlib
import inspect
import pkgutil
from typing import TYPE_CHECKING, Dict, Type

import scanmd.providers as providers_pkg
from scanmd.errors import ConfigurationError
from scanmd.providers.base import OcrProvider

if TYPE_CHECKING:
    from scanmd.config import PipelineConfig

PROVIDER_REGISTRY: Dict[str, Type[OcrProvider]] = {}

_SKIP_MODULES = {"base", "registry"}


def auto_discover_providers() -> None:
    """
    Automatically import all provider modules.

    A class is considered a provider if:
      - it has a class attribute provider_id (str)
      - it has a callable process_file(path) method
      - it has a from_config(config) constructor
    """
    package_path = providers_pkg.__path__

    for module_info in pkgutil.iter_modules(package_path):
        if module_info.name in _SKIP_MODULES:
            continue
        module_name = f"{providers_pkg.__name__}.{module_info.name}"
        module = importlib.import_module(module_name)

        for _, obj in inspect.getmembers(module, inspect.isclass):
            if obj.__module__ != module.__name__:
                continue
            provider_id = getattr(obj, "provider_id", None)
            process_fn = getattr(obj, "process_file", None)
            factory = getattr(obj, "from_config", None)

            if isinstance(provider_id, str) and callable(process_fn) and callable(factory):
                PROVIDER_REGISTRY[provider_id] = obj  # type: ignore[assignment]


# Run auto-discovery at import time
auto_discover_providers()


def get_provider_class(provider_id: str) -> Type[OcrProvider]:
    try:
        return PROVIDER_REGISTRY[provider_id]
    except KeyError as e:
        known = ", ".join(sorted(PROVIDER_REGISTRY)) or "none"
        raise ConfigurationError(f"Unknown OCR provider {provider_id!r} (available: {known})") from e


def create_provider(config: "PipelineConfig") -> OcrProvider:
    """Resolve ``config.provider`` and build the provider from ``config``."""
    cls = get_provider_class(config.provider)
    return cls.from_config(config)  # type: ignore[attr-defined]


def available_providers() -> Dict[str, str]:
    """Map of provider identifier to display name."""
    return {pid: getattr(cls, "name", pid) for pid, cls in sorted(PROVIDER_REGISTRY.items())}
