"""Single-page invoice layout.

The invoice is a fixed stack of sections on one A4 page. Each section has a
nominal height in millimetres; when the stack does not fit the printable
area every section is shrunk by the same factor. Nothing is ever moved to a
second page.

Examples:
>>> round(compute_scale(420, 257), 3)
0.612
>>> compute_scale(200, 257)
1.0
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

PAGE_WIDTH_MM = 210.0
PAGE_HEIGHT_MM = 297.0
MARGIN_MM = 20.0
AVAILABLE_HEIGHT_MM = PAGE_HEIGHT_MM - 2 * MARGIN_MM  # 257

ROW_HEIGHT_MM = 8.0

SECTION_HEIGHTS: Dict[str, float] = {
    "header": 40.0,
    "invoice_info": 35.0,
    "addresses": 30.0,
    "table_header": 10.0,
    "summary": 25.0,
    "payment": 40.0,
    "footer": 25.0,
}


@dataclass(frozen=True)
class SectionBox:
    name: str
    top: float
    height: float

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass
class InvoiceLayout:
    """Scaled section boxes, offsets in mm from the top edge of the page."""
    scale: float
    required: float
    available: float
    sections: List[SectionBox] = field(default_factory=list)

    def box(self, name: str) -> SectionBox:
        for section in self.sections:
            if section.name == name:
                return section
        raise KeyError(name)

    def has(self, name: str) -> bool:
        return any(section.name == name for section in self.sections)

    @property
    def used_height(self) -> float:
        return math.fsum(section.height for section in self.sections)


def compute_scale(required: float, available: float = AVAILABLE_HEIGHT_MM) -> float:
    """Shared shrink factor, never above 1.0."""
    if required <= 0:
        return 1.0
    return min(1.0, available / required)


def invoice_sections(row_count: int, has_payment: bool) -> List[Tuple[str, float]]:
    """Nominal (name, height) stack for an invoice with ``row_count`` item rows."""
    sections = [
        ("header", SECTION_HEIGHTS["header"]),
        ("invoice_info", SECTION_HEIGHTS["invoice_info"]),
        ("addresses", SECTION_HEIGHTS["addresses"]),
        ("table_header", SECTION_HEIGHTS["table_header"]),
        ("table_rows", ROW_HEIGHT_MM * max(row_count, 0)),
        ("summary", SECTION_HEIGHTS["summary"]),
    ]
    if has_payment:
        sections.append(("payment", SECTION_HEIGHTS["payment"]))
    sections.append(("footer", SECTION_HEIGHTS["footer"]))
    return sections


def compute_layout(
    sections: Sequence[Tuple[str, float]],
    available: float = AVAILABLE_HEIGHT_MM,
    top: float = MARGIN_MM,
) -> InvoiceLayout:
    required = sum(height for _, height in sections)
    scale = compute_scale(required, available)
    heights = [height * scale for _, height in sections]
    # Rounded products can overshoot the page by an ulp; trim the last box.
    while heights and heights[-1] > 0 and math.fsum(heights) > available:
        excess = math.fsum(heights) - available
        heights[-1] = max(0.0, heights[-1] - max(excess, math.ulp(available)))
    boxes = []
    cursor = top
    for (name, _), scaled in zip(sections, heights):
        boxes.append(SectionBox(name=name, top=cursor, height=scaled))
        cursor += scaled
    return InvoiceLayout(scale=scale, required=required,
                         available=available, sections=boxes)


def fit_image(width: float, height: float, box_width: float,
              box_height: float) -> Tuple[float, float, float]:
    """Fit an image into a box keeping its aspect ratio.

    Returns ``(drawn_width, drawn_height, y_offset)`` where ``y_offset``
    centres the image vertically inside the box.
    """
    if width <= 0 or height <= 0:
        return 0.0, 0.0, 0.0
    ratio = min(box_width / width, box_height / height)
    drawn_width = width * ratio
    drawn_height = height * ratio
    return drawn_width, drawn_height, (box_height - drawn_height) / 2


__all__ = [
    "PAGE_WIDTH_MM",
    "PAGE_HEIGHT_MM",
    "MARGIN_MM",
    "AVAILABLE_HEIGHT_MM",
    "ROW_HEIGHT_MM",
    "SECTION_HEIGHTS",
    "SectionBox",
    "InvoiceLayout",
    "compute_scale",
    "invoice_sections",
    "compute_layout",
    "fit_image",
]
