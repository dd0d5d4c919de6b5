"""Tests for BashCommandClassifier."""

from __future__ import annotations

import pytest

from backstep.operations.bash_detector import BashCommandClassifier
from backstep.operations.models import (
    DirectoryCreate,
    FileDelete,
    FileRename,
    ShellCommand,
)


class TestBashCommandClassifier:
    """Tests for BashCommandClassifier."""

    @pytest.fixture
    def working_dir(self) -> str:
        """Test working directory."""
        return "/project"

    def test_rm(self, working_dir: str) -> None:
        """Test rm classifies as a file delete without content."""
        payload = BashCommandClassifier.classify("rm file.txt", working_dir)

        assert payload == FileDelete(file_path="/project/file.txt", content=None)

    def test_rm_with_flags(self, working_dir: str) -> None:
        """Test rm with a single flag group."""
        payload = BashCommandClassifier.classify("rm -rf build", working_dir)

        assert payload == FileDelete(file_path="/project/build", content=None)

    def test_rm_absolute_path_kept(self, working_dir: str) -> None:
        """Test absolute paths are not re-rooted."""
        payload = BashCommandClassifier.classify("rm -f /tmp/x.log", working_dir)

        assert payload == FileDelete(file_path="/tmp/x.log", content=None)

    def test_rmdir_is_not_a_file_delete(self, working_dir: str) -> None:
        """Test commands mentioning rmdir never classify as rm."""
        payload = BashCommandClassifier.classify("rmdir empty", working_dir)

        assert payload == ShellCommand(command="rmdir empty")

    def test_mv(self, working_dir: str) -> None:
        """Test mv classifies as a rename."""
        payload = BashCommandClassifier.classify("mv a.txt sub/b.txt", working_dir)

        assert payload == FileRename(
            old_path="/project/a.txt", new_path="/project/sub/b.txt"
        )

    def test_mkdir(self, working_dir: str) -> None:
        """Test mkdir classifies as a directory create."""
        payload = BashCommandClassifier.classify("mkdir out", working_dir)

        assert payload == DirectoryCreate(dir_path="/project/out")

    def test_mkdir_parents(self, working_dir: str) -> None:
        """Test mkdir -p."""
        payload = BashCommandClassifier.classify("mkdir -p a/b/c", working_dir)

        assert payload == DirectoryCreate(dir_path="/project/a/b/c")

    def test_rm_wins_over_mv(self, working_dir: str) -> None:
        """Test the first matching rule wins."""
        payload = BashCommandClassifier.classify("mv a b && rm c", working_dir)

        assert isinstance(payload, FileDelete)
        assert payload.file_path == "/project/c"

    def test_word_containing_rm_is_opaque(self, working_dir: str) -> None:
        """Test rm inside another word does not match."""
        payload = BashCommandClassifier.classify("npm run format", working_dir)

        assert payload == ShellCommand(command="npm run format")

    def test_other_commands_are_opaque(self) -> None:
        """Test everything else is an opaque shell command."""
        payload = BashCommandClassifier.classify("git commit -m x")

        assert payload == ShellCommand(command="git commit -m x")

    def test_without_working_dir_paths_kept(self) -> None:
        """Test relative paths are kept as recorded without a working dir."""
        payload = BashCommandClassifier.classify("mv a b")

        assert payload == FileRename(old_path="a", new_path="b")

    def test_quotes_are_literal(self, working_dir: str) -> None:
        """Test quoting is not interpreted."""
        payload = BashCommandClassifier.classify('rm "my file.txt"', working_dir)

        assert isinstance(payload, FileDelete)
        assert payload.file_path == '/project/"my'

    @pytest.mark.parametrize(
        ("command", "expected"),
        [
            ("rm a", True),
            ("mv a b", True),
            ("mkdir d", True),
            ("pytest -q", False),
            ("rmdir d", False),
        ],
    )
    def test_opaque_commands(self, command: str, expected: bool) -> None:
        """Test which commands classify as something other than an opaque command."""
        payload = BashCommandClassifier.classify(command)

        assert (not isinstance(payload, ShellCommand)) is expected
