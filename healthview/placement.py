"""Viewport-aware tooltip placement.

The placement itself is pure geometry on literal rectangles. Measuring the
rendered tooltip box is a separate concern; ``estimate_content_size`` is the
default measurement used when no real renderer is available.
"""

from collections.abc import Sequence

from .models import Anchor, Position, Size, Viewport
from .timefmt import round_half_up

# Gap between the anchor and the tooltip box.
ANCHOR_GAP = 8

# Extra room required beyond the box size before a side counts as "enough".
EDGE_MARGIN = 20

# Minimum distance kept between the tooltip and the viewport's left edge.
LEFT_CLAMP = 10

# Monospace metrics of the tooltip text (11-12px font).
CHAR_WIDTH = 7.2
LINE_HEIGHT = 16
BOX_PADDING_X = 12
BOX_PADDING_Y = 8


def place_tooltip(
    anchor: Anchor,
    content: Size,
    viewport: Size | Viewport,
    scroll: tuple[float, float] = (0, 0),
) -> Position:
    """Compute where a tooltip box goes relative to its anchor.

    Args:
        anchor: Viewport-relative rectangle of the originating element.
        content: Measured size of the tooltip box.
        viewport: Visible area size.
        scroll: Current ``(x, y)`` scroll offset of the document.

    Returns:
        Document-coordinate position of the box's top-left corner.
    """
    scroll_x, scroll_y = scroll

    top = anchor.bottom + scroll_y + ANCHOR_GAP
    left = anchor.left + scroll_x

    space_below = viewport.height - anchor.bottom
    space_above = anchor.top
    needed_height = content.height + EDGE_MARGIN
    if space_below < needed_height and space_above >= needed_height:
        top = anchor.top + scroll_y - content.height - ANCHOR_GAP

    if viewport.width - anchor.left < content.width + EDGE_MARGIN:
        left = anchor.right + scroll_x - content.width
        if left < scroll_x + LEFT_CLAMP:
            left = scroll_x + LEFT_CLAMP

    return Position(top=round_half_up(top), left=round_half_up(left))


def place_in_viewport(anchor: Anchor, content: Size, viewport: Viewport) -> Position:
    """``place_tooltip`` using the scroll offset carried by ``viewport``."""
    return place_tooltip(anchor, content, viewport, (viewport.scroll_x, viewport.scroll_y))


def estimate_content_size(lines: Sequence[str]) -> Size:
    """Approximate the rendered size of a block of monospace text lines."""
    if not lines:
        return Size(0, 0)
    widest = max(len(line) for line in lines)
    return Size(
        width=round_half_up(widest * CHAR_WIDTH + 2 * BOX_PADDING_X),
        height=len(lines) * LINE_HEIGHT + 2 * BOX_PADDING_Y,
    )
