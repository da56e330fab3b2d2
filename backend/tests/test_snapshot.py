"""
Tests for Hash Calculator and State Cache.

Requires Python 3.11+.
"""

import hashlib
import os
from pathlib import Path

import pytest

from snapshot.hash_calculator import HashCalculator, is_real_hash
from snapshot.state_cache import FileState, build_state_cache, read_file_state
from utils.errors import StateCacheError, WatchStartError


class TestHashCalculator:
    """Test cases for HashCalculator."""

    @pytest.fixture
    def hasher(self) -> HashCalculator:
        """Create a hash calculator instance."""
        return HashCalculator()

    @pytest.mark.parametrize(
        "name",
        ["main.go", "app.PY", "config.yaml", "Dockerfile", "Makefile", "package.json", "Cargo.toml"],
    )
    def test_significant_files(self, hasher: HashCalculator, name: str):
        """Test source, config and build files are significant."""
        assert hasher.is_significant(name)

    @pytest.mark.parametrize("name", ["image.png", "binary", "archive.tar.gz", "out.bin"])
    def test_insignificant_files(self, hasher: HashCalculator, name: str):
        """Test other files are compared by metadata only."""
        assert not hasher.is_significant(name)

    def test_hash_file(self, hasher: HashCalculator, tmp_path: Path):
        """Test hashing produces the SHA-256 of the content."""
        path = tmp_path / "a.go"
        path.write_bytes(b"package a\n")

        digest = hasher.hash_file(path, path.stat().st_size)

        assert digest == hashlib.sha256(b"package a\n").hexdigest()
        assert len(digest) == 64
        assert is_real_hash(digest)

    def test_hash_changes_with_content(self, hasher: HashCalculator, tmp_path: Path):
        """Test that hash changes when content changes."""
        path = tmp_path / "a.go"
        path.write_text("package a\n")
        hash1 = hasher.hash_file(path, path.stat().st_size)
        path.write_text("package b\n")
        hash2 = hasher.hash_file(path, path.stat().st_size)

        assert hash1 != hash2

    def test_large_file_placeholder(self, tmp_path: Path):
        """Test files above the ceiling get a size-tagged placeholder."""
        hasher = HashCalculator(max_size=8)
        path = tmp_path / "big.py"
        path.write_text("x = 1234567890\n")

        value = hasher.hash_file(path, path.stat().st_size)

        assert value == f"large:{path.stat().st_size}"
        assert not is_real_hash(value)

    def test_hash_if_significant(self, hasher: HashCalculator, tmp_path: Path):
        """Test insignificant files are not hashed."""
        path = tmp_path / "data.bin"
        path.write_bytes(b"\x00\x01")

        assert hasher.hash_if_significant(path, 2) is None

    def test_hash_missing_file_raises(self, hasher: HashCalculator, tmp_path: Path):
        """Test read failures surface as OSError."""
        with pytest.raises(OSError):
            hasher.hash_file(tmp_path / "missing.go", 10)


class TestFileState:
    """Test cases for FileState and read_file_state."""

    def test_has_real_hash(self):
        assert FileState(1.0, 3, "abc").has_real_hash
        assert not FileState(1.0, 3, None).has_real_hash
        assert not FileState(1.0, 3, "large:3").has_real_hash

    def test_read_file_state(self, tmp_path: Path):
        path = tmp_path / "main.go"
        path.write_text("package main\n")

        state = read_file_state(str(path), HashCalculator())

        assert state is not None
        assert state.size == path.stat().st_size
        assert state.mod_time == path.stat().st_mtime
        assert state.has_real_hash

    def test_read_missing_file(self, tmp_path: Path):
        assert read_file_state(str(tmp_path / "gone.go"), HashCalculator()) is None


class TestBuildStateCache:
    """Test cases for build_state_cache."""

    def test_walks_tree(self, project: Path):
        """Test every regular file outside VCS metadata is recorded."""
        cache = build_state_cache(project)

        assert str(project / "main.go") in cache
        assert str(project / "pkg" / "util.go") in cache
        assert str(project / "node_modules" / "left-pad" / "index.js") in cache
        assert not any(os.sep + ".git" + os.sep in p for p in cache)

    def test_significant_files_hashed(self, project: Path):
        cache = build_state_cache(project)

        assert cache[str(project / "main.go")].has_real_hash

    def test_insignificant_files_not_hashed(self, project: Path):
        (project / "logo.png").write_bytes(b"\x89PNG")

        cache = build_state_cache(project)

        assert cache[str(project / "logo.png")].content_hash is None

    def test_non_recursive(self, project: Path):
        """Test subdirectories are skipped in non-recursive mode."""
        cache = build_state_cache(project, recursive=False)

        assert str(project / "main.go") in cache
        assert str(project / "pkg" / "util.go") not in cache
        assert all(os.path.dirname(p) == str(project) for p in cache)

    def test_missing_root_is_fatal(self, tmp_path: Path):
        with pytest.raises(StateCacheError):
            build_state_cache(tmp_path / "missing")

    def test_error_is_a_start_error(self, tmp_path: Path):
        """Test cache failures abort session start."""
        file_root = tmp_path / "file.txt"
        file_root.write_text("not a directory")

        with pytest.raises(WatchStartError):
            build_state_cache(file_root)

    def test_symlink_to_directory_not_recorded(self, project: Path):
        (project / "link").symlink_to(project / "pkg", target_is_directory=True)

        cache = build_state_cache(project)

        assert str(project / "link") not in cache
