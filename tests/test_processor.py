"""Tests for the chart processor and chart export."""

from __future__ import annotations

import pytest
from PIL import Image

from knitgrid.image_processing import (
    PatternProcessor,
    PatternResult,
    chart_to_svg,
    chart_to_text,
)
from knitgrid.models import ChartProcessingConfig, ColorEntry, GridSpec, ProjectState
from tests.conftest import BLACK, UNIT_SQUARE, WHITE, image_bytes, split_image


@pytest.fixture
def processor():
    return PatternProcessor()


@pytest.fixture
def striped_project():
    return ProjectState(
        name="stripes",
        crop_points=list(UNIT_SQUARE),
        grid=GridSpec(2, 4),
        colors=[ColorEntry(WHITE, "W"), ColorEntry(BLACK, "B")],
    )


class TestLoadImage:
    def test_from_path(self, processor, tmp_path):
        path = tmp_path / "chart.png"
        split_image(8, 8, WHITE, BLACK).save(path)
        image = processor.load_image(path)
        assert image.mode == "RGBA"
        assert image.size == (8, 8)

    def test_missing_file(self, processor, tmp_path):
        with pytest.raises(ValueError):
            processor.load_image(tmp_path / "absent.png")

    def test_jpeg_accepted(self, processor):
        data = image_bytes(Image.new("RGB", (4, 4), WHITE), fmt="JPEG")
        assert processor.load_image(data).size == (4, 4)


class TestProcess:
    def test_uncropped(self, processor):
        image = split_image(40, 20, WHITE, BLACK)
        assert processor.compute_cell_colors(image, ProjectState(grid=GridSpec(2, 2))) == []

    def test_process(self, processor, striped_project):
        result = processor.process(split_image(40, 20, WHITE, BLACK), striped_project)
        assert result.cell_colors == [WHITE, WHITE, BLACK, BLACK] * 2
        assert (result.image_width, result.image_height) == (40, 20)
        # working row 0 is the bottom grid row
        assert [row.grid_row for row in result.rows] == [1, 0]
        assert [row.rle for row in result.rows] == ["2B 2W", "2W 2B"]
        assert [label.char for label in result.labels] == list("WWBB") * 2
        assert result.labels[0].text_color == BLACK

    def test_suggest_colors(self):
        processor = PatternProcessor(ChartProcessingConfig(dedup_threshold=10))
        suggested = processor.suggest_colors([WHITE, "#fefefe", BLACK, None])
        assert [(e.hex, e.char) for e in suggested] == [(WHITE, "A"), (BLACK, "B")]

    def test_suggest_skips_existing(self, processor):
        suggested = processor.suggest_colors([WHITE, BLACK], existing=[ColorEntry(WHITE, "A")])
        assert [(e.hex, e.char) for e in suggested] == [(BLACK, "B")]


class TestCellLabels:
    def test_correction_uses_matching_entry(self, processor):
        palette = [ColorEntry(WHITE, "W"), ColorEntry(BLACK, "B")]
        labels = processor.cell_labels([WHITE, WHITE], palette, {1: "B"})
        assert [label.char for label in labels] == ["W", "B"]
        assert labels[1].hex == BLACK

    def test_correction_without_entry_gets_placeholder(self, processor):
        labels = processor.cell_labels([WHITE], [ColorEntry(WHITE, "W")], {0: "Q"})
        assert labels[0].char == "Q"
        assert labels[0].hex == "#808080"

    def test_empty_palette(self, processor):
        assert processor.cell_labels([WHITE, None], []) == [None, None]

    def test_unknown_cell_has_no_label(self, processor):
        palette = [ColorEntry(BLACK, "B"), ColorEntry(WHITE, "W")]
        labels = processor.cell_labels([None, WHITE], palette)
        assert labels[0] is None
        assert labels[1].char == "W"

    def test_corrected_unknown_cell_is_labeled(self, processor):
        palette = [ColorEntry(BLACK, "B"), ColorEntry(WHITE, "W")]
        labels = processor.cell_labels([None], palette, {0: "W"})
        assert labels[0].char == "W"


class TestExport:
    def test_text(self, processor, striped_project):
        result = processor.process(split_image(40, 20, WHITE, BLACK), striped_project)
        assert chart_to_text(result.rows).splitlines() == [
            "Row 1 (K, RTL): 2B 2W",
            "Row 2 (P, LTR): 2W 2B",
        ]

    def test_svg(self, processor, striped_project):
        result = processor.process(split_image(40, 20, WHITE, BLACK), striped_project)
        document = chart_to_svg(striped_project, result)
        assert document.startswith("<svg")
        assert document.count("<rect") == 8
        assert ">W</text>" in document
        assert ">B</text>" in document

    def test_svg_skips_malformed_colors(self):
        project = ProjectState(name="bad", grid=GridSpec(1, 1))
        result = PatternResult(cell_colors=[WHITE], labels=[ColorEntry("#12345", "A")])
        document = chart_to_svg(project, result)
        assert "#12345" not in document
        assert ">A</text>" not in document
        assert document.count("<rect") == 1

    def test_svg_without_grid(self, processor):
        project = ProjectState(name="empty")
        document = chart_to_svg(project, processor.process(Image.new("RGB", (4, 4)), project))
        assert document.startswith("<svg")
        assert "<rect" not in document
