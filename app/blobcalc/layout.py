"""
Blob Layout Calculator

Turns per-term blob counts into one blob diameter and a list of
top-left positions that fit inside a width x height area.

Stateless: every function here is a pure input -> output mapping and
never raises. Blobs that do not fit are dropped, never overflowed.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .logging_config import get_logger

logger = get_logger("layout")


@dataclass
class LayoutOptions:
    """Sizing knobs for compute_layout()."""
    min_diameter: float = 2.0
    max_diameter: float = 24.0
    packing_factor: float = 0.7       # Leaves room for the gaps between blobs
    spacing: float = 4.0
    default_diameter: float = 20.0    # Used when there is nothing to size against
    render_cap: Optional[int] = None  # Max blobs placed in total (None = uncapped)


@dataclass
class BlobSpec:
    """How many blobs one term contributes, and its palette slot."""
    count: int
    color_index: int = 0


@dataclass
class BlobPosition:
    x: float
    y: float
    color_index: int = 0


@dataclass
class LayoutResult:
    diameter: float
    positions: List[BlobPosition] = field(default_factory=list)
    dropped: int = 0  # Blobs requested but not placed (cap or no room)

    def to_dict(self) -> dict:
        return {
            "diameter": self.diameter,
            "positions": [
                {"x": p.x, "y": p.y, "color_index": p.color_index}
                for p in self.positions
            ],
            "dropped": self.dropped,
        }


def blob_specs(
    terms: Iterable[int],
    palette_size: int,
    max_per_term: Optional[int] = None,
) -> List[BlobSpec]:
    """
    One BlobSpec per term, colored by term position modulo the palette.

    Negative counts are treated as 0.
    """
    palette_size = max(1, palette_size)
    specs = []
    for index, value in enumerate(terms):
        count = max(0, int(value))
        if max_per_term is not None:
            count = min(count, max(0, max_per_term))
        specs.append(BlobSpec(count=count, color_index=index % palette_size))
    return specs


def blob_diameter(total_count: int, width: float, height: float, options: LayoutOptions) -> float:
    """
    Diameter that lets `total_count` blobs roughly fill the area.

    sqrt(area / n) is the side of the square each blob would get;
    the packing factor shrinks it to leave room for spacing.
    """
    if total_count <= 0 or not (width > 0 and height > 0):
        return options.default_diameter
    ideal = math.sqrt((width * height) / total_count) * options.packing_factor
    return max(options.min_diameter, min(options.max_diameter, ideal))


def _expand(counts: Sequence[BlobSpec]) -> Iterable[int]:
    """Yield one color index per blob, term order then index order."""
    for spec in counts:
        for _ in range(max(0, spec.count)):
            yield spec.color_index


def compute_layout(
    counts: Sequence[BlobSpec],
    width: float,
    height: float,
    options: Optional[LayoutOptions] = None,
) -> LayoutResult:
    """
    Place blobs row-major, left to right then top to bottom.

    Each blob advances x by diameter + spacing; when the next blob
    would cross the right edge the row wraps. Placement stops at the
    first row that would cross the bottom edge and the rest are
    reported in `dropped`.
    """
    options = options or LayoutOptions()

    requested = sum(max(0, spec.count) for spec in counts)

    if not (width > 0 and height > 0):
        logger.debug(f"Empty layout for non-positive area {width}x{height}")
        return LayoutResult(diameter=options.default_diameter, dropped=requested)

    total = requested
    if options.render_cap is not None:
        total = min(total, max(0, options.render_cap))

    if total == 0:
        return LayoutResult(diameter=options.default_diameter, dropped=requested)

    diameter = blob_diameter(total, width, height, options)
    step = diameter + options.spacing

    positions: List[BlobPosition] = []
    x = y = 0.0
    for color_index in _expand(counts):
        if len(positions) >= total:
            break
        if x + diameter > width:
            x = 0.0
            y += step
        if x + diameter > width or y + diameter > height:
            break
        positions.append(BlobPosition(x=x, y=y, color_index=color_index))
        x += step

    dropped = requested - len(positions)
    if dropped:
        logger.debug(f"Placed {len(positions)} of {requested} blobs in {width}x{height} (d={diameter:.2f})")

    return LayoutResult(diameter=diameter, positions=positions, dropped=dropped)


def layout_for_terms(
    terms: Iterable[int],
    width: float,
    height: float,
    options: Optional[LayoutOptions] = None,
    palette_size: int = 1,
    max_per_term: Optional[int] = None,
) -> LayoutResult:
    """Convenience: blob_specs() followed by compute_layout()."""
    specs = blob_specs(terms, palette_size, max_per_term=max_per_term)
    return compute_layout(specs, width, height, options)
