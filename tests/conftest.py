from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from rsmap.config import RsmapConfig
from rsmap.parse import SourceParser

FIXTURE_DIR = Path(__file__).parent / "fixtures"
SAMPLE_CRATE = FIXTURE_DIR / "sample_crate"


@pytest.fixture(scope="session")
def parser() -> SourceParser:
    return SourceParser()


@pytest.fixture
def sample_crate(tmp_path: Path) -> Path:
    """A writable copy of the sample crate."""
    target = tmp_path / "sample_crate"
    shutil.copytree(SAMPLE_CRATE, target)
    return target


@pytest.fixture
def offline_config() -> RsmapConfig:
    """Config that reads Cargo.toml directly instead of calling cargo."""
    return RsmapConfig(use_cargo_metadata=False)
