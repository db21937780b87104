"""
PNG snapshot rendering for canvas nodes.

Snapshots are flat: each visible, filled node is painted as a solid
rectangle in tree order over a transparent background.
"""
import io
import logging
from dataclasses import dataclass
from typing import Iterable, Tuple

from PIL import Image, ImageDraw

from canvas_agent.config import MAX_EXPORT_DIMENSION

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


@dataclass(frozen=True)
class PaintLayer:
    """A solid rectangle to paint, in page coordinates."""
    x: float
    y: float
    width: float
    height: float
    rgb: Tuple[int, int, int]
    opacity: float = 1.0

    @property
    def rgba(self) -> Tuple[int, int, int, int]:
        alpha = max(0, min(255, int(round(self.opacity * 255))))
        return (*self.rgb, alpha)


def _clamp_dimension(value: float) -> int:
    return max(1, min(MAX_EXPORT_DIMENSION, int(round(value))))


def _image_to_png(img: Image.Image) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def render_layers(origin: Tuple[float, float], size: Tuple[float, float],
                  layers: Iterable[PaintLayer]) -> bytes:
    """
    Paint layers into an image covering ``size`` starting at ``origin``.

    Args:
        origin: Page coordinates of the image's top-left corner
        size: Width and height in page units; clamped to the export limit
        layers: Rectangles painted in order, later ones on top

    Returns:
        PNG bytes
    """
    width, height = _clamp_dimension(size[0]), _clamp_dimension(size[1])
    img = Image.new("RGBA", (width, height), TRANSPARENT)
    # Drawing on an RGBA image replaces pixels; opacity only sets the alpha channel
    draw = ImageDraw.Draw(img)
    ox, oy = origin

    for layer in layers:
        left = max(0, int(round(layer.x - ox)))
        top = max(0, int(round(layer.y - oy)))
        right = min(width, int(round(layer.x - ox + layer.width)))
        bottom = min(height, int(round(layer.y - oy + layer.height)))
        if left >= right or top >= bottom:
            continue
        # ImageDraw boxes include their far edge
        draw.rectangle((left, top, right - 1, bottom - 1), fill=layer.rgba)

    logger.debug(f"Rendered {width}x{height} snapshot")
    return _image_to_png(img)
