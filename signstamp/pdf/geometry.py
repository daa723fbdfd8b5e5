"""
Field geometry: percentage-based field boxes to absolute PDF placement.

PDF coordinate system: origin at bottom-left, Y increases upward.
All coordinates in points (1 point = 1/72 inch).

Fields are given as fractions of the page, with ``top_pct`` measured from the
TOP edge (browser convention). ``resolve_placement`` flips that to the
bottom-left origin and fits the signature image into the box without
distorting it.

Nothing in this module knows about PyMuPDF.
"""
import math
from dataclasses import dataclass
from typing import Tuple

from signstamp.pdf.errors import DegenerateGeometryError


@dataclass(frozen=True)
class FieldPlacement:
    """
    Normalized signature field.

    All percentages are fractions in [0, 1] of the page's own width/height.
    Values outside that range are not rejected here.
    """
    page: int          # 1-indexed page number
    left_pct: float
    top_pct: float     # From the top edge
    width_pct: float
    height_pct: float

    def to_dict(self) -> dict:
        """Export in the request's wire shape, for the audit record."""
        return {
            "page": self.page,
            "leftPct": self.left_pct,
            "topPct": self.top_pct,
            "widthPct": self.width_pct,
            "heightPct": self.height_pct,
        }


@dataclass(frozen=True)
class PlacementBox:
    """Absolute, aspect-corrected draw rectangle (bottom-left origin, points)."""
    x: float
    y: float
    width: float
    height: float

    def to_top_left(self, page_height: float) -> Tuple[float, float, float, float]:
        """
        Convert to (x0, y0, x1, y1) in a top-left-origin system.

        PyMuPDF rects use (0,0) at the top-left of the page.
        """
        y_top = page_height - self.y - self.height
        return (self.x, y_top, self.x + self.width, y_top + self.height)


def aspect_ratio(pixel_width: int, pixel_height: int) -> float:
    """Width/height of an image; zero-height images are degenerate."""
    if pixel_height <= 0 or pixel_width <= 0:
        raise DegenerateGeometryError(
            f"Image has no area: {pixel_width}x{pixel_height} px"
        )
    return pixel_width / pixel_height


def resolve_placement(
    field: FieldPlacement,
    page_width: float,
    page_height: float,
    image_aspect_ratio: float,
) -> PlacementBox:
    """
    Fit an image into a field box, preserving aspect ratio, centered.

    Args:
        field: Normalized field rectangle
        page_width, page_height: Target page size in points
        image_aspect_ratio: Image width / height

    Returns:
        PlacementBox in points, bottom-left origin

    Raises:
        DegenerateGeometryError: If the box or the ratio cannot be fitted
    """
    if not math.isfinite(image_aspect_ratio) or image_aspect_ratio <= 0:
        raise DegenerateGeometryError(
            f"Invalid image aspect ratio: {image_aspect_ratio}"
        )

    box_x = field.left_pct * page_width
    box_w = field.width_pct * page_width
    box_h = field.height_pct * page_height
    box_y = page_height * (1 - (field.top_pct + field.height_pct))

    if box_w <= 0 or box_h <= 0:
        raise DegenerateGeometryError(
            f"Field on page {field.page} has no area: {box_w}x{box_h} pt"
        )

    box_ratio = box_w / box_h

    if image_aspect_ratio > box_ratio:
        # Image is relatively wider: fit width
        draw_w = box_w
        draw_h = box_w / image_aspect_ratio
    else:
        # Image is relatively taller (or equal): fit height
        draw_h = box_h
        draw_w = box_h * image_aspect_ratio

    return PlacementBox(
        x=box_x + (box_w - draw_w) / 2,
        y=box_y + (box_h - draw_h) / 2,
        width=draw_w,
        height=draw_h,
    )
