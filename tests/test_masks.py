import pytest

from headdetect.masks import (
    AXIS_CROSS,
    LOLLIPOP,
    MAX_BOXES,
    SHOULDER_LOLLIPOP,
    SPHERE_GATE,
    SPHERE_SHELL,
    STAGE1,
    STAGE2,
    SYM_FB,
    SYM_LR,
    HaarBox,
    HaarMask,
)


@pytest.mark.parametrize(
    "mask, padding",
    [
        (SPHERE_SHELL, 1),
        (SPHERE_GATE, 0),
        (AXIS_CROSS, 5),
        (LOLLIPOP, 5),
        (SHOULDER_LOLLIPOP, 2),
        (SYM_LR, MAX_BOXES),
    ],
)
def test_masks_are_padded_to_capacity(mask, padding):
    rebuilt = HaarMask(mask.name, mask.boxes)
    assert len(rebuilt.boxes) == MAX_BOXES
    assert len(rebuilt.boxes) - len(rebuilt.active_boxes()) == padding


def test_too_many_boxes_rejected():
    with pytest.raises(ValueError):
        HaarMask("big", tuple(HaarBox(w=1.0) for _ in range(MAX_BOXES + 1)))


def test_active_box_counts():
    assert len(SPHERE_SHELL.active_boxes()) == 7
    assert len(SPHERE_GATE.active_boxes()) == 8
    assert len(AXIS_CROSS.active_boxes()) == 3
    assert len(LOLLIPOP.active_boxes()) == 3
    assert len(SHOULDER_LOLLIPOP.active_boxes()) == 6


def test_symmetry_masks_are_empty():
    assert SYM_LR.active_boxes() == []
    assert SYM_FB.leading_boxes() == []
    assert SYM_LR.name == "unusedLR"


def test_leading_boxes_stop_at_first_zero_weight():
    a = HaarBox(0, 0, 0, 1, 1, 1, 1.0)
    b = HaarBox(0, 0, 0, 2, 2, 2, -1.0)
    mask = HaarMask("gap", (a, HaarBox(), b))
    assert mask.leading_boxes() == [a]
    assert mask.active_boxes() == [a, b]


def test_leading_equals_active_for_contiguous_masks():
    a = HaarBox(0, 0, 0, 1, 1, 1, 1.0)
    b = HaarBox(0, 0, 0, 2, 2, 2, -1.0)
    contiguous = HaarMask("pair", (a, b))
    assert contiguous.leading_boxes() == [a, b]
    assert contiguous.active_boxes() == [a, b]
    for mask in STAGE2:
        rebuilt = HaarMask(mask.name, mask.boxes)
        assert rebuilt.leading_boxes() == rebuilt.active_boxes()


def test_sphere_gate_weights():
    rebuilt = HaarMask(SPHERE_GATE.name, SPHERE_GATE.boxes)
    weights = [b.w for b in rebuilt.active_boxes()]
    assert weights == [-2.0] * 6 + [10.0, -1.0]


def test_stage_lists():
    assert STAGE1 == (SPHERE_GATE,)
    rebuilt = [HaarMask(m.name, m.boxes) for m in STAGE2]
    assert [m.name for m in rebuilt] == ["lollipop", "shoulderLollipop", "axisCross"]
    assert [len(m.active_boxes()) for m in rebuilt] == [3, 6, 3]


def test_boxes_have_ordered_corners():
    for mask in (SPHERE_SHELL, SPHERE_GATE, AXIS_CROSS, LOLLIPOP, SHOULDER_LOLLIPOP):
        for b in mask.active_boxes():
            assert b.dx0 <= b.dx1 and b.dy0 <= b.dy1 and b.dz0 <= b.dz1