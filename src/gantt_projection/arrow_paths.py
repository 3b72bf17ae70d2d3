from __future__ import annotations

from .task_models import ArrowPath, BarPosition, PathSegment


DEFAULT_ROW_HEIGHT = 40.0
CONTROL_OFFSET_RATIO = 0.3
MIN_CONTROL_OFFSET = 2.0  # percent; keeps an S-shape when the bars line up vertically


def path_for(
    source_bar: BarPosition | None,
    target_bar: BarPosition | None,
    source_row: int,
    target_row: int,
    row_height: float = DEFAULT_ROW_HEIGHT,
) -> ArrowPath | None:
    """
    Connector from the right edge of `source_bar` to the left edge of `target_bar`.

    Both ends sit on the vertical centre of their rows. Control points are
    pushed horizontally away from each end, which gives an S-curve between
    different rows and a near-straight line within one row. Returns None when
    either bar is hidden.
    """

    if source_bar is None or target_bar is None:
        return None
    if row_height <= 0:
        raise ValueError(f"row_height must be positive, got {row_height}")
    if source_row < 0 or target_row < 0:
        raise ValueError(f"row indices must be non-negative, got {source_row} and {target_row}")

    source_x = source_bar.right
    source_y = (source_row + 0.5) * row_height
    target_x = target_bar.left
    target_y = (target_row + 0.5) * row_height

    offset = abs(target_x - source_x) * CONTROL_OFFSET_RATIO
    if source_row != target_row:
        offset = max(offset, MIN_CONTROL_OFFSET)

    return ArrowPath(
        segments=(
            PathSegment("M", ((source_x, source_y),)),
            PathSegment(
                "C",
                (
                    (source_x + offset, source_y),
                    (target_x - offset, target_y),
                    (target_x, target_y),
                ),
            ),
        )
    )
