"""Picture-in-picture compositing with Pillow.

The merged image is the primary photo with the secondary photo inset in the
top-left corner: rounded corners, a soft drop shadow and a black border.
All geometry scales with the primary image width.
"""

import io
import logging
import math
from dataclasses import dataclass
from typing import Tuple

from PIL import Image, ImageDraw, ImageFilter

from ..common.errors import CompositingError

logger = logging.getLogger(__name__)

SHADOW_OPACITY = 0.4
SHADOW_BLUR = 15
SHADOW_OFFSET = (5, 5)
MIN_BORDER_WIDTH = 4

# Supersampling factor for anti-aliased masks
MASK_SCALE = 4


@dataclass(frozen=True)
class InsetGeometry:
    """Placement of the inset on a canvas of a given width."""
    pip_width: int
    pip_height: int
    margin: int
    radius: int
    border_width: int

    @property
    def box(self) -> Tuple[int, int, int, int]:
        return (self.margin, self.margin, self.margin + self.pip_width, self.margin + self.pip_height)


def inset_geometry(canvas_width: int) -> InsetGeometry:
    """Compute inset size and placement for a primary image width.

    Examples:
        >>> inset_geometry(1400)
        InsetGeometry(pip_width=400, pip_height=533, margin=35, radius=28, border_width=7)
    """
    pip_width = math.floor(canvas_width / 3.5)
    return InsetGeometry(
        pip_width=pip_width,
        pip_height=math.floor(pip_width * 4 / 3),
        margin=canvas_width // 40,
        radius=canvas_width // 50,
        border_width=int(max(MIN_BORDER_WIDTH, canvas_width / 200)),
    )


def create_rounded_mask(size: Tuple[int, int], radius: int, fill: int = 255) -> Image.Image:
    """
    Create an anti-aliased rounded rectangle mask.

    Drawn at 4x resolution and downsampled with LANCZOS for smooth edges.

    Args:
        size: (width, height) of the mask
        radius: Corner radius in output pixels
        fill: Mask value inside the rectangle

    Returns:
        Mode 'L' mask image
    """
    large_size = (size[0] * MASK_SCALE, size[1] * MASK_SCALE)
    mask = Image.new('L', large_size, 0)
    draw = ImageDraw.Draw(mask)
    draw.rounded_rectangle((0, 0, large_size[0] - 1, large_size[1] - 1), radius=radius * MASK_SCALE, fill=fill)
    return mask.resize(size, Image.Resampling.LANCZOS)


def load_image(data: bytes, role: str) -> Image.Image:
    """Decode image bytes fully, converting decode failures to CompositingError."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        # UnidentifiedImageError is an OSError
        raise CompositingError(f"Could not decode {role} image: {e}", role=role) from e
    return image


def _to_rgb(image: Image.Image) -> Image.Image:
    """Flatten transparency onto white, as JPEG has no alpha channel."""
    if image.mode in ('RGBA', 'LA', 'P'):
        if image.mode == 'P':
            image = image.convert('RGBA')
        flattened = Image.new('RGB', image.size, (255, 255, 255))
        flattened.paste(image, mask=image.split()[-1])
        return flattened
    return image.convert('RGB')


def encode_jpeg(image: Image.Image, quality: int = 95) -> bytes:
    buffer = io.BytesIO()
    _to_rgb(image).save(buffer, 'JPEG', quality=quality)
    return buffer.getvalue()


def convert_to_jpeg(data: bytes, quality: int = 95) -> bytes:
    """Re-encode any still image as JPEG.

    Raises:
        CompositingError: If the bytes are not a decodable image
    """
    return encode_jpeg(load_image(data, "still"), quality)


def _draw_shadow(canvas: Image.Image, geometry: InsetGeometry) -> Image.Image:
    shadow_mask = Image.new('L', canvas.size, 0)
    left, top, right, bottom = geometry.box
    dx, dy = SHADOW_OFFSET
    ImageDraw.Draw(shadow_mask).rounded_rectangle(
        (left + dx, top + dy, right + dx - 1, bottom + dy - 1),
        radius=geometry.radius,
        fill=int(255 * SHADOW_OPACITY),
    )
    # Canvas shadowBlur is roughly twice the Gaussian standard deviation
    shadow_mask = shadow_mask.filter(ImageFilter.GaussianBlur(SHADOW_BLUR / 2))
    return Image.composite(Image.new('RGB', canvas.size, (0, 0, 0)), canvas, shadow_mask)


def create_merged_image(primary_data: bytes, secondary_data: bytes, quality: int = 95) -> bytes:
    """
    Composite the secondary photo into the primary photo.

    The output has exactly the primary image's dimensions. The secondary
    image is scaled (not cropped) to fill the inset.

    Args:
        primary_data: Encoded primary (back camera) image
        secondary_data: Encoded secondary (front camera) image
        quality: JPEG quality of the result

    Returns:
        JPEG bytes

    Raises:
        CompositingError: If either image cannot be decoded, or the primary
            is too small to hold an inset
    """
    primary = load_image(primary_data, "primary")
    secondary = load_image(secondary_data, "secondary")

    width, height = primary.size
    geometry = inset_geometry(width)
    if geometry.pip_width < 1 or geometry.pip_height < 1:
        raise CompositingError(
            f"Primary image too small to composite: {width}x{height}",
            width=width,
            height=height,
        )

    canvas = _draw_shadow(_to_rgb(primary), geometry)

    inset = _to_rgb(secondary).resize((geometry.pip_width, geometry.pip_height), Image.Resampling.LANCZOS)
    canvas.paste(inset, (geometry.margin, geometry.margin), create_rounded_mask(inset.size, geometry.radius))

    # Center the stroke on the inset outline
    half = geometry.border_width // 2
    left, top, right, bottom = geometry.box
    ImageDraw.Draw(canvas).rounded_rectangle(
        (left - half, top - half, right + half - 1, bottom + half - 1),
        radius=geometry.radius + half,
        outline=(0, 0, 0),
        width=geometry.border_width,
    )

    logger.debug(
        f"Merged image: {{'size': {canvas.size}, 'inset': {(geometry.pip_width, geometry.pip_height)}}}"
    )
    return encode_jpeg(canvas, quality)
