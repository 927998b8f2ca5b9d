"""Shared pytest configuration for pattern matcher tests."""
from pathlib import Path
import io
import sys
from unittest.mock import MagicMock, patch

TESTS_DIR = Path(__file__).resolve().parent
SERVICE_ROOT = TESTS_DIR.parent
REPO_ROOT = SERVICE_ROOT.parent.parent
LIBS_ROOT = REPO_ROOT / "libs"

for candidate in (TESTS_DIR, SERVICE_ROOT, LIBS_ROOT / "common-py", LIBS_ROOT / "contracts"):
    candidate_str = str(candidate)
    if candidate_str not in sys.path:
        sys.path.insert(0, candidate_str)

import numpy as np  # noqa: E402
import pytest  # noqa: E402
from PIL import Image  # noqa: E402

from pattern_matcher.services.data_models import RunSettings  # noqa: E402
from pattern_matcher.services.service import PatternMatchService  # noqa: E402
from support.fakes import (  # noqa: E402
    FakeListingMirrorCRUD,
    FakeMatchCRUD,
    FakeSearchRecordCRUD,
    InMemoryObjectStore,
)


def make_pattern(seed: int, size: int = 128) -> Image.Image:
    """A smooth random pattern: 8x8 noise upscaled, so its low frequencies dominate."""
    rng = np.random.default_rng(seed)
    cells = rng.integers(0, 256, size=(8, 8, 3), dtype=np.uint8)
    return Image.fromarray(cells, "RGB").resize((size, size), Image.BILINEAR)


def encode(img: Image.Image, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def pattern_bytes():
    """Factory: ``pattern_bytes(seed)`` returns PNG bytes of a reproducible pattern."""

    def factory(seed: int, size: int = 128, fmt: str = "PNG") -> bytes:
        return encode(make_pattern(seed, size), fmt)

    return factory


@pytest.fixture
def store():
    return InMemoryObjectStore()


@pytest.fixture
def search_crud():
    return FakeSearchRecordCRUD()


@pytest.fixture
def mirror_crud():
    return FakeListingMirrorCRUD()


@pytest.fixture
def match_crud():
    return FakeMatchCRUD()


@pytest.fixture
def settings():
    return RunSettings(compare_log_sample=2)


@pytest.fixture
def service(store, search_crud, mirror_crud, match_crud, settings):
    """PatternMatchService wired to the in-memory fakes."""
    with patch("pattern_matcher.services.service.SearchRecordCRUD", return_value=search_crud), \
            patch("pattern_matcher.services.service.ListingMirrorCRUD", return_value=mirror_crud), \
            patch("pattern_matcher.services.service.MatchCRUD", return_value=match_crud):
        yield PatternMatchService(MagicMock(), store, settings)
