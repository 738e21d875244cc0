"""Haar-like box masks used by the head detector cascade.

All coordinates are in metres, relative to the window centre. A mask holds
up to :data:`MAX_BOXES` weighted boxes; unused slots are filled with empty
boxes of zero weight.
"""

from __future__ import annotations

from dataclasses import dataclass

MAX_BOXES = 8

R = 0.15  # head radius (about 26 cm diameter)
T = 0.02  # shell thickness
L = R  # half-side of the bounding cube
CX = 0.06  # half thickness of neck / cross slabs
NH = 0.08  # neck height
SH = 0.26  # half shoulder span
SZ = 0.08  # shoulder thickness (Z)


@dataclass(frozen=True)
class HaarBox:
    """An axis-aligned box given by two corners and a weight."""

    dx0: float = 0.0
    dy0: float = 0.0
    dz0: float = 0.0
    dx1: float = 0.0
    dy1: float = 0.0
    dz1: float = 0.0
    w: float = 0.0


@dataclass(frozen=True)
class HaarMask:
    """A named, fixed-capacity list of weighted boxes."""

    name: str
    boxes: tuple[HaarBox, ...] = ()

    def __post_init__(self) -> None:
        boxes = tuple(self.boxes)
        if len(boxes) > MAX_BOXES:
            raise ValueError(
                f"mask {self.name!r} has {len(boxes)} boxes; at most {MAX_BOXES} allowed"
            )
        padded = boxes + (HaarBox(),) * (MAX_BOXES - len(boxes))
        object.__setattr__(self, "boxes", padded)

    def active_boxes(self) -> list[HaarBox]:
        """All boxes with a non-zero weight, wherever they sit."""
        return [b for b in self.boxes if b.w != 0.0]

    def leading_boxes(self) -> list[HaarBox]:
        """Boxes up to (not including) the first one with zero weight."""
        result = []
        for box in self.boxes:
            if box.w == 0.0:
                break
            result.append(box)
        return result


# Stage 1: coarse gates -------------------------------------------------

SPHERE_SHELL = HaarMask(
    "sphereShell",
    (
        HaarBox(L - T, -L, -L, L, L, L, 1.0),
        HaarBox(-L, -L, -L, -L + T, L, L, 1.0),
        HaarBox(-L, L - T, -L, L, L, L, 1.0),
        HaarBox(-L, -L, -L, L, -L + T, L, 1.0),
        HaarBox(-L, -L, L - T, L, L, L, 1.0),
        HaarBox(-L, -L, -L, L, L, -L + T, 1.0),
        HaarBox(-0.11, -0.11, -0.11, 0.11, 0.11, 0.11, -1.0),
    ),
)

SPHERE_GATE = HaarMask(
    "sphereGate",
    (
        # outer negative shell
        HaarBox(L - T, -L, -L, L, L, L, -2.0),
        HaarBox(-L, -L, -L, -L + T, L, L, -2.0),
        HaarBox(-L, L - T, -L, L, L, L, -2.0),
        HaarBox(-L, -L, -L, L, -L + T, L, -2.0),
        HaarBox(-L, -L, L - T, L, L, L, -2.0),
        HaarBox(-L, -L, -L, L, L, -L + T, -2.0),
        # middle positive slab on the +Z face
        HaarBox(-L + T, -L + T, L - 2 * T, L - T, L - T, L - T, 10.0),
        # inner negative core (18 cm cube)
        HaarBox(-0.09, -0.09, -0.09, 0.09, 0.09, 0.09, -1.0),
    ),
)

STAGE1: tuple[HaarMask, ...] = (SPHERE_GATE,)

AXIS_CROSS = HaarMask(
    "axisCross",
    (
        HaarBox(-L, -CX, -CX, L, CX, CX, 1.0),
        HaarBox(-CX, -L, -CX, CX, L, CX, 1.0),
        HaarBox(-CX, -CX, -L, CX, CX, L, 1.0),
    ),
)

# Stage 2: refined shells -----------------------------------------------

LOLLIPOP = HaarMask(
    "lollipop",
    (
        HaarBox(-L, -L, -L, L, L, L, 1.0),
        HaarBox(-0.11, -0.11, -0.11, 0.11, 0.11, 0.11, -1.0),
        HaarBox(-CX, -CX, -L - NH, CX, CX, -L, 1.0),
    ),
)

SHOULDER_LOLLIPOP = HaarMask(
    "shoulderLollipop",
    (
        HaarBox(-L, -L, -L, L, L, L, 1.0),
        HaarBox(-0.11, -0.11, -0.11, 0.11, 0.11, 0.11, -1.0),
        HaarBox(-CX, -CX, -L - NH, CX, CX, -L, 1.0),
        HaarBox(-SH, -L - 0.02, -SZ - 0.25, -0.12, L + 0.02, -0.15, 1.0),
        HaarBox(0.12, -L - 0.02, -SZ - 0.25, SH, L + 0.02, -0.15, 1.0),
        HaarBox(-0.10, -0.10, -SZ - 0.25, 0.10, 0.10, -0.15, -2.0),
    ),
)

STAGE2: tuple[HaarMask, ...] = (LOLLIPOP, SHOULDER_LOLLIPOP, AXIS_CROSS)

# Symmetry masks kept for the scoring logic; both are empty.
SYM_LR = HaarMask("unusedLR")
SYM_FB = HaarMask("unusedFB")