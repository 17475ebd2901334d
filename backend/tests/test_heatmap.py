from __future__ import annotations

import pytest

from phenom.heatmap import (
    HEATMAP_SIZE,
    default_heatmap,
    heatmap_cells,
    interval_of,
    update_heatmap,
    weak_spots,
)


def test_update_moves_one_cell_and_leaves_input_untouched() -> None:
    heatmap = default_heatmap()
    raised = update_heatmap(heatmap, 7, True)
    lowered = update_heatmap(heatmap, 1, False)

    assert heatmap == [0.5] * HEATMAP_SIZE
    assert raised[7] == pytest.approx(0.55)
    assert lowered[1] == pytest.approx(0.4)
    assert raised[:7] == heatmap[:7]


def test_update_clamps_to_unit_interval() -> None:
    heatmap = [1.0] * 11 + [0.02]
    assert update_heatmap(heatmap, 0, True)[0] == 1.0
    assert update_heatmap(heatmap, 11, False)[11] == 0.0


def test_update_rejects_out_of_range_index() -> None:
    with pytest.raises(IndexError):
        update_heatmap(default_heatmap(), 12, True)


def test_weak_spots_orders_by_score_then_index() -> None:
    heatmap = default_heatmap()
    heatmap[9] = 0.1
    heatmap[3] = 0.2
    assert weak_spots(heatmap) == [9, 3, 0, 1]
    assert weak_spots(default_heatmap(), 2) == [0, 1]


def test_interval_of_wraps_octaves_and_modulated_keys() -> None:
    assert interval_of(67, 60) == 7
    assert interval_of(55, 60) == 7
    assert interval_of(54, 57) == 9


def test_cells_carry_interval_names() -> None:
    cells = heatmap_cells(default_heatmap())
    assert cells[0]["name"] == "1"
    assert cells[7]["solfege"] == "Soh"
    assert cells[1]["name"] == "b2"
