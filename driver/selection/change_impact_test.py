"""Unit tests for the change-impact lookup."""

from __future__ import annotations

import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from driver.selection.change_impact import GitDiffChangeImpact, is_test_file


class TestIsTestFile:
    """Tests for test file classification."""

    @pytest.mark.parametrize("path", [
        "src/auth_test.py",
        "tests/test_login.py",
        "spec/user_spec.rb",
        "t/basic.t",
        "lib/Foo/Bar.t",
    ])
    def test_default_patterns_match(self, path):
        assert is_test_file(path)

    @pytest.mark.parametrize("path", [
        "src/auth.py",
        "README.md",
        "lib/Foo/Bar.pm",
        "testing/helpers.py",
    ])
    def test_default_patterns_reject(self, path):
        assert not is_test_file(path)

    def test_custom_patterns(self):
        assert is_test_file("checks/smoke.check", ["*.check"])
        assert not is_test_file("t/basic.t", ["*.check"])


class TestGitDiffChangeImpact:
    """Tests for the git-diff based default lookup."""

    def test_keeps_existing_test_files_in_diff_order(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "t").mkdir()
            (root / "t" / "b.t").write_text("")
            (root / "t" / "a.t").write_text("")
            changed = ["lib/Foo.pm", "t/b.t", "t/a.t", "t/removed.t"]

            with patch(
                "driver.selection.change_impact.git.diff_names",
                return_value=changed,
            ) as mock_diff:
                impact = GitDiffChangeImpact(root)
                tests = impact.tests_for_range("main..HEAD")

            mock_diff.assert_called_once_with("main..HEAD", cwd=root)
            assert tests == ["t/b.t", "t/a.t"]

    def test_no_test_changes(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with patch(
                "driver.selection.change_impact.git.diff_names",
                return_value=["lib/Foo.pm"],
            ):
                assert GitDiffChangeImpact(tmpdir).tests_for_range("HEAD") == []
