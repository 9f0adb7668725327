from __future__ import annotations

import uuid
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ElementType = Literal["text", "box", "rounded-box", "image", "dynamic-text"]

# Open Graph canvas size.
CANVAS_WIDTH = 1200
CANVAS_HEIGHT = 630


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Border(_Model):
    color: str = "#000000"
    width: int = 1
    style: Literal["outside", "inside"] = "outside"


class BaseElement(_Model):
    id: str
    name: str
    x: int
    y: int
    width: int
    height: int
    visible: bool = True
    rotate: int = 0
    opacity: int = 100
    blur: int = 0


class TextFields(_Model):
    content: str
    color: str = "#000000"
    font_family: str = Field("Inter", alias="fontFamily")
    font_weight: int = Field(400, alias="fontWeight")
    font_size: int = Field(50, alias="fontSize")
    line_height: float = Field(1, alias="lineHeight")
    letter_spacing: float = Field(0, alias="letterSpacing")
    align: Literal["left", "center", "right"] = "left"


class TextElement(TextFields, BaseElement):
    type: Literal["text"] = "text"


class DynamicTextElement(TextFields, BaseElement):
    """Text whose content is a `{{placeholder}}` filled in when the image is rendered."""

    type: Literal["dynamic-text"] = "dynamic-text"


class BoxElement(BaseElement):
    type: Literal["box"] = "box"
    background_color: str = Field("#000000", alias="backgroundColor")
    border: Optional[Border] = None


class RoundedBoxElement(BaseElement):
    type: Literal["rounded-box"] = "rounded-box"
    background_color: str = Field("#000000", alias="backgroundColor")
    border: Optional[Border] = None
    radius: int = 20


class ImageElement(BaseElement):
    type: Literal["image"] = "image"
    background_image: str = Field("", alias="backgroundImage")
    background_size: Literal["contain", "cover"] = Field("contain", alias="backgroundSize")


OGElement = Annotated[
    Union[TextElement, DynamicTextElement, BoxElement, RoundedBoxElement, ImageElement],
    Field(discriminator="type"),
]


def create_element_id() -> str:
    return uuid.uuid4().hex


def _centered(width: int, height: int) -> dict:
    return {
        "x": (CANVAS_WIDTH - width) // 2,
        "y": (CANVAS_HEIGHT - height) // 2,
        "width": width,
        "height": height,
    }


def create_default_element(element_type: ElementType) -> OGElement:
    """A new, centered element of `element_type` with a fresh id."""
    element_id = create_element_id()
    if element_type == "text":
        return TextElement(id=element_id, name="Text", content="Text", **_centered(200, 50))
    if element_type == "dynamic-text":
        return DynamicTextElement(id=element_id, name="Dynamic text", content="{{title}}", **_centered(312, 50))
    if element_type == "box":
        return BoxElement(id=element_id, name="Box", **_centered(200, 200))
    if element_type == "rounded-box":
        return RoundedBoxElement(id=element_id, name="Rounded box", **_centered(200, 200))
    if element_type == "image":
        return ImageElement(
            id=element_id,
            name="Image",
            backgroundImage="https://source.unsplash.com/random",
            **_centered(200, 200),
        )
    raise ValueError(f"Unknown element type: {element_type}")
