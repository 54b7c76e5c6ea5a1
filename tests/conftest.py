# conftest.py - pytest configuration
import pytest

from patchmend.commit.core import LocalFileStore, MemoryFileStore


@pytest.fixture
def repo(tmp_path):
    """A small on-disk repository with one source file."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.js").write_text("a\nb\nc\nd\ne\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def local_store(repo):
    return LocalFileStore(str(repo))


@pytest.fixture
def memory_store():
    return MemoryFileStore({"src/app.js": "a\nb\nc\nd\ne\n"})
