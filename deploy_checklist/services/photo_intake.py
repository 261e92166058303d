# deploy_checklist/services/photo_intake.py
"""
Photo intake: turn picked image files into small JPEG data URLs before upload.

Each accepted file is decoded, scaled down so neither side exceeds 800px,
re-encoded as JPEG at quality 50 and returned as
``data:image/jpeg;base64,...``. Files over 50MB are refused without being
decoded. Every category has a count ceiling and a batch is cut down to the
remaining capacity before any file is processed.
"""
import base64
import io
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from PIL import Image, ImageOps

from ..models import PHOTO_CATEGORIES

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB
MAX_DIMENSION = 800
JPEG_QUALITY = 50
MAX_PHOTOS = {"device": 10, "printer": 5}

@dataclass
class SourceFile:
    name: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path) -> "SourceFile":
        p = Path(path)
        return cls(name=p.name, content=p.read_bytes())

@dataclass
class PhotoPayload:
    filename: str
    data: str

    def to_dict(self) -> dict:
        return {"filename": self.filename, "data": self.data}

@dataclass
class RejectedFile:
    filename: str
    reason: str

@dataclass
class IntakeResult:
    accepted: List[PhotoPayload] = field(default_factory=list)
    rejected: List[RejectedFile] = field(default_factory=list)
    dropped: int = 0  # files beyond the remaining capacity

def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))

def scaled_size(width: int, height: int, max_size: int = MAX_DIMENSION) -> Tuple[int, int]:
    """Fit (width, height) inside max_size x max_size keeping the aspect ratio. Never upscales."""
    if width > max_size or height > max_size:
        if width > height:
            height = _round_half_up(height * max_size / width)
            width = max_size
        else:
            width = _round_half_up(width * max_size / height)
            height = max_size
    return width, height

def compress_image(content: bytes, max_size: int = MAX_DIMENSION, quality: int = JPEG_QUALITY) -> str:
    with Image.open(io.BytesIO(content)) as src:
        img = ImageOps.exif_transpose(src)
        if img.mode != "RGB":
            img = img.convert("RGB")
        size = scaled_size(img.width, img.height, max_size)
        if size != img.size:
            img = img.resize(size, Image.LANCZOS)
        buffer = io.BytesIO()
        img.save(buffer, "JPEG", quality=quality)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"

def too_large_reason(f: SourceFile) -> str:
    return f'"{f.name}" is too large ({f.size / 1024 / 1024:.1f}MB). Maximum size is 50MB.'

def intake(files: List[SourceFile], category: str, existing: int = 0) -> IntakeResult:
    if category not in PHOTO_CATEGORIES:
        raise ValueError(f"Unknown photo category: {category}")
    remaining = max(MAX_PHOTOS[category] - existing, 0)
    batch = files[:remaining]
    result = IntakeResult(dropped=len(files) - len(batch))

    for f in batch:
        if f.size > MAX_FILE_SIZE:
            result.rejected.append(RejectedFile(f.name, too_large_reason(f)))
            continue
        try:
            data = compress_image(f.content)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            logger.warning("Could not decode %s: %s", f.name, e)
            result.rejected.append(RejectedFile(f.name, f'"{f.name}" could not be read as an image.'))
            continue
        result.accepted.append(PhotoPayload(filename=f.name, data=data))
    return result

class PhotoTray:
    """The photos picked so far for one category."""

    def __init__(self, category: str):
        if category not in PHOTO_CATEGORIES:
            raise ValueError(f"Unknown photo category: {category}")
        self.category = category
        self.photos: List[PhotoPayload] = []

    @property
    def limit(self) -> int:
        return MAX_PHOTOS[self.category]

    @property
    def remaining(self) -> int:
        return max(self.limit - len(self.photos), 0)

    def add_files(self, files: List[SourceFile]) -> IntakeResult:
        result = intake(files, self.category, existing=len(self.photos))
        self.photos.extend(result.accepted)
        return result

    def remove(self, index: int) -> PhotoPayload:
        return self.photos.pop(index)

    def clear(self):
        self.photos = []

    def to_payload(self) -> List[dict]:
        return [p.to_dict() for p in self.photos]

    def __len__(self):
        return len(self.photos)
