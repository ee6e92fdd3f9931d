"""Pytest fixtures for bacilint tests."""

import tempfile
from pathlib import Path

import pytest


SAMPLE_PROGRAM = """\
semaphore s = 1;
binarysem b = 0;

void worker(int id)
{
  wait(s);
  signal(s);
}

void main()
{
  cobegin {
    worker(1); worker(2);
  }
}
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def data_dir(temp_dir, monkeypatch):
    """Point the settings store at a temporary directory."""
    path = temp_dir / "data"
    monkeypatch.setenv("BACILINT_DATA_DIR", str(path))
    return path


@pytest.fixture
def sample_program():
    """A small program with no violations."""
    return SAMPLE_PROGRAM
