"""Recognition backends.

Each module in this package may define provider classes; they are picked up
by :mod:`scanmd.providers.registry` and selected by ``provider_id``.
"""

from .base import OcrImage, OcrPage, OcrProvider, OcrResult, Stage, strip_data_uri

__all__ = ["OcrImage", "OcrPage", "OcrProvider", "OcrResult", "Stage", "strip_data_uri"]
