import pytest

from noa.scripts import (
    ScriptDeploymentQueue,
    ScriptFile,
    compute_version,
    dequeue,
    escape_script,
)


def _files():
    return [ScriptFile("a.py", "x"), ScriptFile("b.py", "y"), ScriptFile("c.py", "z")]


class TestVersion:
    """Test content-addressed bundle versions."""

    def test_deterministic(self):
        assert compute_version(_files()) == compute_version(_files())

    def test_order_sensitive(self):
        assert compute_version(_files()) != compute_version(list(reversed(_files())))

    def test_content_sensitive(self):
        changed = [ScriptFile("a.py", "x"), ScriptFile("b.py", "y2"), ScriptFile("c.py", "z")]
        assert compute_version(_files()) != compute_version(changed)

    def test_hex_digest(self):
        version = compute_version(_files())
        assert len(version) == 64
        int(version, 16)


class TestEscaping:
    """Test line break escaping for single-line uploads."""

    def test_escape(self):
        assert escape_script("a = 1\nb = 2\n") == "a = 1\\nb = 2\\n"

    def test_no_line_breaks(self):
        assert escape_script("pass") == "pass"


class TestDeploymentQueue:
    """Test script bundle preparation."""

    def test_entry_point_gets_version(self):
        """Only the entry point is prefixed with the version assignment."""
        queue = ScriptDeploymentQueue(_files(), entry_point="c.py")
        names = [f.name for f in queue.files]
        assert names == ["a.py", "b.py", "c.py"]
        assert queue.files[0].content == "x"
        assert queue.files[1].content == "y"
        assert queue.files[2].content == f'ARGPT_VERSION="{queue.version}"\\nz'

    def test_version_computed_before_prefix(self):
        queue = ScriptDeploymentQueue(_files(), entry_point="c.py")
        assert queue.version == compute_version(_files())

    def test_custom_version_variable(self):
        queue = ScriptDeploymentQueue(_files(), entry_point="a.py", version_variable="APP_VERSION")
        assert queue.files[0].content.startswith('APP_VERSION="')
        assert queue.version_variable == "APP_VERSION"

    def test_empty_rejected(self):
        with pytest.raises(ValueError, match="No scripts"):
            ScriptDeploymentQueue([])

    def test_missing_entry_point_rejected(self):
        with pytest.raises(ValueError, match="main.py"):
            ScriptDeploymentQueue(_files())

    def test_from_sources_escapes(self):
        queue = ScriptDeploymentQueue.from_sources(
            [("lib.py", "a = 1\nb = 2"), ("main.py", "import lib\n")],
        )
        assert queue.files[0].content == "a = 1\\nb = 2"
        assert queue.files[1].content.endswith("import lib\\n")
        assert all("\n" not in f.content for f in queue)

    def test_from_directory(self, tmp_path):
        for name, source in (("states", "S = 1\n"), ("main", "import states\n")):
            (tmp_path / f"{name}.py").write_text(source, encoding="utf-8")

        queue = ScriptDeploymentQueue.from_directory(tmp_path, names=("states", "main"))

        assert len(queue) == 2
        assert [f.name for f in queue] == ["states.py", "main.py"]
        assert queue.files[0].content == "S = 1\\n"

    def test_from_directory_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ScriptDeploymentQueue.from_directory(tmp_path, names=("main",))


class TestDequeue:
    """Test taking files off the front of the pending tuple."""

    def test_dequeue(self):
        files = tuple(_files())
        first, rest = dequeue(files)
        assert first == files[0]
        assert rest == files[1:]

    def test_dequeue_empty(self):
        assert dequeue(()) == (None, ())
