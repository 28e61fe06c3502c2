"""OCR provider contract: result types, stage milestones and the provider protocol."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Protocol


class Stage(enum.Enum):
    """Milestones of one recognition call, in the order they happen."""

    SUBMITTED = "submitted"
    ACCESS_GRANTED = "access_granted"
    RECOGNITION_REQUESTED = "recognition_requested"
    RECOGNITION_COMPLETE = "recognition_complete"


StageCallback = Callable[[Stage], None]


@dataclass
class OcrImage:
    """An image embedded in a recognised page.

    ``id`` is only unique within its page.  ``base64`` is ``None`` when the
    backend returned a reference without image data.
    """

    id: str
    base64: Optional[str] = None


@dataclass
class OcrPage:
    index: int
    markdown: str
    images: List[OcrImage] = field(default_factory=list)


@dataclass
class OcrResult:
    pages: List[OcrPage] = field(default_factory=list)


def strip_data_uri(payload: str) -> str:
    """Drop a ``data:<mime>;base64,`` prefix from an image payload."""
    if "," in payload:
        return payload.split(",", 1)[1]
    return payload


class OcrProvider(Protocol):
    """
    Protocol for recognition backends.

    Any backend (Mistral, Tesseract, etc.) should implement this.

    Providers live in:
        scanmd.providers.<name>

    and declare a unique:
        provider_id: str
    plus a human readable ``name``.
    """

    # provider_id: str = "unique-name"
    # name: str = "Display Name"

    async def process_file(self, path: Path, progress: Optional[StageCallback] = None) -> OcrResult:
        """
        Recognise every page of the PDF at ``path``.

        Pages are returned in document order.  ``progress`` is called with
        each :class:`Stage` as it is reached.  Any failure is raised as
        ``RemoteServiceError`` carrying one descriptive message.
        """
        ...
