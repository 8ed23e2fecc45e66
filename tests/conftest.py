"""Shared test fixtures."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from knitgrid.models import ColorEntry, GridSpec, Point
from knitgrid.project_store import InMemoryProjectRepository
from knitgrid.session import EditingSession

RED = "#ff0000"
BLUE = "#0000ff"
WHITE = "#ffffff"
BLACK = "#000000"

UNIT_SQUARE = [Point(0.0, 0.0), Point(1.0, 0.0), Point(1.0, 1.0), Point(0.0, 1.0)]

# TL, TR, BR, BL of a perspective-looking crop
SKEWED_QUAD = [
    Point(0.13, 0.07),
    Point(0.91, 0.18),
    Point(0.83, 0.94),
    Point(0.05, 0.71),
]


def split_image(width: int, height: int, left: str, right: str) -> Image.Image:
    """RGB image with its left and right halves in two solid colors."""
    image = Image.new("RGB", (width, height), right)
    image.paste(Image.new("RGB", (width // 2, height), left), (0, 0))
    return image


def image_bytes(image: Image.Image, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def unit_square() -> list[Point]:
    return list(UNIT_SQUARE)


@pytest.fixture
def skewed_quad() -> list[Point]:
    return list(SKEWED_QUAD)


@pytest.fixture
def palette_ab() -> list[ColorEntry]:
    return [ColorEntry(hex=RED, char="A"), ColorEntry(hex=BLUE, char="B")]


@pytest.fixture
def grid_2x2() -> GridSpec:
    return GridSpec(rows=2, cols=2)


@pytest.fixture
def repository() -> InMemoryProjectRepository:
    return InMemoryProjectRepository()


@pytest.fixture
def session(repository) -> EditingSession:
    return EditingSession(repository)
