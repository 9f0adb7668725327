"""Local filesystem storage for OG images (one JSON document per image)."""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from ogstudio.editor.elements import OGElement, create_element_id

logger = logging.getLogger(__name__)


class Image(BaseModel):
    id: str
    name: str
    elements: List[OGElement] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class LocalImageStore:
    """Filesystem-backed image store; keys are image ids."""

    base_dir: str = "./images"
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        """Ensure base directory exists."""
        self.base_dir = os.path.abspath(self.base_dir)
        Path(self.base_dir).mkdir(parents=True, exist_ok=True)

    def _path(self, image_id: str) -> Optional[Path]:
        # Ids are generated by us; refuse anything that could escape base_dir.
        if not image_id or not image_id.replace("-", "").isalnum():
            return None
        return Path(self.base_dir) / f"{image_id}.json"

    def exists(self, image_id: str) -> bool:
        path = self._path(image_id)
        return path is not None and path.exists()

    def get_image(self, image_id: str) -> Optional[Image]:
        path = self._path(image_id)
        if path is None or not path.exists():
            return None
        return Image.model_validate_json(path.read_text(encoding="utf-8"))

    def put_image(self, image: Image) -> None:
        path = self._path(image.id)
        if path is None:
            raise ValueError(f"Invalid image id: {image.id!r}")
        body = json.dumps(image.model_dump(mode="json", by_alias=True), indent=2)
        tmp = path.with_suffix(".json.tmp")
        with self._lock:
            tmp.write_text(body, encoding="utf-8")
            tmp.replace(path)

    def create_image(self, name: str, elements: Sequence[OGElement] = ()) -> Image:
        image = Image(id=create_element_id(), name=(name or "").strip() or "Untitled", elements=list(elements))
        self.put_image(image)
        logger.info("Created image %s (%s)", image.id, image.name)
        return image

    def save_elements(self, image_id: str, elements: Sequence[OGElement]) -> bool:
        """Replace an image's elements. Returns False if the image does not exist."""
        image = self.get_image(image_id)
        if image is None:
            return False
        image.elements = list(elements)
        image.updated_at = datetime.now(timezone.utc)
        self.put_image(image)
        return True

    def list_images(self) -> List[Image]:
        images: List[Image] = []
        for p in sorted(Path(self.base_dir).glob("*.json")):
            try:
                images.append(Image.model_validate_json(p.read_text(encoding="utf-8")))
            except ValueError as e:
                logger.warning("Skipping unreadable image file %s: %s", p.name, str(e))
        images.sort(key=lambda i: i.updated_at, reverse=True)
        return images
