"""Unit tests for test identifier path conversions."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from driver.selection.paths import PathMapper


@pytest.fixture
def repo():
    """A directory tree standing in for a repository checkout."""
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(os.path.realpath(tmpdir))
        (root / "lib" / "db").mkdir(parents=True)
        (root / "t").mkdir()
        (root / "lib" / "db" / "connect.t").write_text("")
        (root / "t" / "basic.t").write_text("")
        yield root


class TestPathMapper:
    """Tests for converting between path forms."""

    def test_to_repo_from_root(self, repo):
        mapper = PathMapper(repo, repo)
        assert mapper.to_repo("t/basic.t") == "t/basic.t"

    def test_to_repo_from_subdir(self, repo):
        mapper = PathMapper(repo, repo / "lib")
        assert mapper.to_repo("db/connect.t") == "lib/db/connect.t"

    def test_to_cwd_from_subdir(self, repo):
        mapper = PathMapper(repo, repo / "lib")
        assert mapper.to_cwd("lib/db/connect.t") == os.path.join("db", "connect.t")

    def test_to_cwd_outside_subdir(self, repo):
        """Tests outside the working directory get a ../ path."""
        mapper = PathMapper(repo, repo / "lib" / "db")
        assert mapper.to_cwd("t/basic.t") == os.path.join("..", "..", "t", "basic.t")

    def test_absolute_path_to_repo(self, repo):
        mapper = PathMapper(repo, repo / "lib")
        assert mapper.to_repo(str(repo / "t" / "basic.t")) == "t/basic.t"

    @pytest.mark.parametrize("cwd_parts", [(), ("lib",), ("lib", "db"), ("t",)])
    @pytest.mark.parametrize("repo_path", ["lib/db/connect.t", "t/basic.t"])
    def test_round_trip(self, repo, cwd_parts, repo_path):
        """repo -> cwd -> repo gives back the original identifier."""
        mapper = PathMapper(repo, repo.joinpath(*cwd_parts))
        assert mapper.to_repo(mapper.to_cwd(repo_path)) == repo_path

    def test_exists(self, repo):
        mapper = PathMapper(repo, repo)
        assert mapper.exists("t/basic.t")
        assert not mapper.exists("t/gone.t")

    def test_discover_uses_git_toplevel(self, repo):
        with patch("driver.selection.paths.git.repo_root", return_value=repo):
            mapper = PathMapper.discover(repo / "lib")
        assert mapper.repo_root == repo
        assert mapper.cwd == repo / "lib"
