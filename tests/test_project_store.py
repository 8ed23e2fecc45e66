"""Tests for project persistence."""

from __future__ import annotations

import json
import logging

import pytest

from knitgrid.models import (
    ColorEntry,
    Direction,
    GridSpec,
    Point,
    ProjectState,
    StitchType,
    ViewportState,
    WorkingState,
)
from knitgrid.project_store import InMemoryProjectRepository, ProjectRepository
from tests.conftest import BLUE, RED, UNIT_SQUARE


def _full_project() -> ProjectState:
    return ProjectState(
        name="Cable scarf",
        image_data="aGVsbG8=",
        crop_points=list(UNIT_SQUARE),
        grid=GridSpec(20, 30),
        grid_color="#ff00ff",
        grid_thickness=3,
        colors=[ColorEntry(RED, "A", "#000000"), ColorEntry(BLUE, "B")],
        working=WorkingState(
            is_active=True,
            current_row=4,
            current_col=2,
            start_from_bottom=False,
            start_stitch=StitchType.PURL,
            knit_direction=Direction.LTR,
            purl_direction=Direction.LTR,
            highlight_color=(1, 2, 3, 4),
            start_col=1,
        ),
        corrections={3: "A", 17: "B", 250: "C"},
        undo_stack=[{}, {3: "A"}, {3: "A", 17: "B"}],
        redo_stack=[{3: "X"}],
        correction_mode=True,
        selected_letter="B",
        brush_size=3,
        viewport=ViewportState(zoom_level=2.0, pan_x=0.1, pan_y=-0.2),
    )


@pytest.fixture
def store(tmp_path) -> ProjectRepository:
    return ProjectRepository(tmp_path / "projects.json")


class TestSerialization:
    def test_round_trip(self):
        project = _full_project()
        data = json.loads(json.dumps(project.to_dict()))
        assert ProjectState.from_dict(data) == project

    def test_overlay_keys_are_object_entries(self):
        data = _full_project().to_dict()
        assert data["correctedLetters"] == {"3": "A", "17": "B", "250": "C"}

    def test_missing_fields_get_defaults(self):
        project = ProjectState.from_dict({"uuid": "p1", "name": "Bare"})
        assert project.grid is None
        assert project.crop_points is None
        assert project.corrections == {}
        assert project.working == WorkingState()
        assert project.brush_size == 1
        assert project.viewport == ViewportState()

    def test_grid_clamped_on_load(self):
        project = ProjectState.from_dict({"rows": 0, "cols": 900})
        assert project.grid == GridSpec(1, 500)

    def test_viewport_zoom_clamped(self):
        assert ViewportState(zoom_level=10).zoom_level == 4.0
        assert ViewportState(zoom_level=0.1).zoom_level == 0.5


class TestProjectRepository:
    def test_save_and_load(self, store):
        project = _full_project()
        assert store.save(project.uuid, project) == (True, None)
        assert store.load(project.uuid) == project

    def test_load_missing(self, store):
        assert store.load("nope") is None

    def test_multiple_projects(self, store):
        a, b = ProjectState(name="a"), ProjectState(name="b")
        store.save(a.uuid, a)
        store.save(b.uuid, b)
        assert store.list_ids() == sorted([a.uuid, b.uuid])
        assert store.load(a.uuid).name == "a"

    def test_save_replaces_whole_record(self, store):
        project = _full_project()
        store.save(project.uuid, project)
        project.corrections = {}
        store.save(project.uuid, project)
        assert store.load(project.uuid).corrections == {}

    def test_delete(self, store):
        project = ProjectState(name="gone")
        store.save(project.uuid, project)
        assert store.delete(project.uuid) is True
        assert store.delete(project.uuid) is False
        assert store.load(project.uuid) is None

    def test_corrupt_file_starts_empty(self, store, caplog):
        store.path.write_text("{not json")
        with caplog.at_level(logging.WARNING):
            assert store.load("p1") is None
            assert store.list_ids() == []
        assert "Could not read projects" in caplog.text

        project = ProjectState(name="fresh")
        assert store.save(project.uuid, project) == (True, None)
        assert store.list_ids() == [project.uuid]

    def test_wrong_shape_file_starts_empty(self, store):
        store.path.write_text("[1, 2, 3]")
        assert store.list_ids() == []

    def test_corrupt_record_starts_from_empty(self, store, caplog):
        record = {"name": "Scarf", "cropPoints": [{"x": "left"}], "rows": 4, "cols": 4}
        store.path.write_text(json.dumps({"p1": record}))
        with caplog.at_level(logging.WARNING):
            project = store.load("p1")
        assert "corrupt" in caplog.text
        assert project.uuid == "p1"
        assert project.name == "Scarf"
        assert project.crop_points is None and project.grid is None

    def test_non_object_record_starts_from_empty(self, store):
        store.path.write_text(json.dumps({"p1": [1, 2]}))
        project = store.load("p1")
        assert project.uuid == "p1"
        assert project.name == ""

    def test_save_failure_reported(self, tmp_path):
        blocked = tmp_path / "blocked"
        blocked.mkdir()
        (blocked / "child").write_text("x")
        ok, error = ProjectRepository(blocked).save("p1", ProjectState())
        assert ok is False
        assert error


class TestInMemoryRepository:
    def test_round_trip_returns_copies(self):
        repo = InMemoryProjectRepository()
        project = _full_project()
        repo.save(project.uuid, project)

        loaded = repo.load(project.uuid)
        assert loaded == project
        loaded.corrections[999] = "Z"
        assert 999 not in repo.load(project.uuid).corrections

    def test_delete_and_list(self):
        repo = InMemoryProjectRepository()
        repo.save("x", ProjectState(uuid="x"))
        assert repo.list_ids() == ["x"]
        assert repo.delete("x") is True
        assert repo.delete("x") is False

    def test_corrupt_record_starts_from_empty(self, caplog):
        repo = InMemoryProjectRepository()
        repo._records["x"] = {"name": "Scarf", "createdAt": "yesterday"}
        with caplog.at_level(logging.WARNING):
            project = repo.load("x")
        assert "corrupt" in caplog.text
        assert (project.uuid, project.name) == ("x", "Scarf")
