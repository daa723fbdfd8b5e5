"""
Signature field stamping.

Applies one decoded signature image to every requested field of a parsed
document, in request order. Fields are not deduplicated; a field listed
twice is drawn twice. There is no per-field rollback: if field N fails,
fields 1..N-1 have already been drawn into the in-memory document, which the
caller then discards.
"""
import logging
from typing import List, Sequence

from signstamp.pdf.engine import PdfDocument
from signstamp.pdf.geometry import FieldPlacement, PlacementBox, resolve_placement
from signstamp.pdf.image import EmbeddedImage

logger = logging.getLogger(__name__)


def place_fields(
    document: PdfDocument,
    image: EmbeddedImage,
    fields: Sequence[FieldPlacement],
) -> List[PlacementBox]:
    """
    Draw the signature image into each field.

    Returns:
        The PlacementBox used for each field, in input order

    Raises:
        PageNotFoundError: If a field references a missing page
        DegenerateGeometryError: If a field box or the image has no area
    """
    ratio = image.aspect_ratio
    boxes = []

    for field in fields:
        page_width, page_height = document.page_size(field.page)
        box = resolve_placement(field, page_width, page_height, ratio)
        document.draw_image(field.page, image, box)
        boxes.append(box)

        logger.info(
            f"Added signature to page {field.page} at "
            f"({box.x:.2f}, {box.y:.2f}) size ({box.width:.2f}x{box.height:.2f})"
        )

    return boxes
