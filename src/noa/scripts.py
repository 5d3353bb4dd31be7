"""Content-addressed deployment of the device-side application scripts."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from pathlib import Path

_LOGGER = logging.getLogger(__name__)

DEFAULT_SCRIPT_NAMES = ("states", "graphics", "audio", "photo", "main")
DEFAULT_ENTRY_POINT = "main.py"
DEFAULT_VERSION_VARIABLE = "ARGPT_VERSION"


@dataclass(frozen=True)
class ScriptFile:
    """One file to write to the device.

    Attributes:
        name: Filename on the device (e.g. "main.py")
        content: Source with line breaks escaped to a literal backslash-n
    """

    name: str
    content: str


def escape_script(source: str) -> str:
    """Escape line breaks so the source fits in a single-line shell command."""
    return source.replace("\n", "\\n")


def compute_version(files: Iterable[ScriptFile]) -> str:
    """Hash filenames and escaped contents, in order, into a version string.

    Args:
        files: Files in deployment order

    Returns:
        Hex SHA-256 digest; reordering files changes it
    """
    digest = hashlib.sha256()
    for script in files:
        digest.update(script.name.encode("utf-8"))
        digest.update(script.content.encode("utf-8"))
    return digest.hexdigest()


class ScriptDeploymentQueue:
    """Ordered scripts plus the version identifier they deploy as.

    The version is computed over the files as loaded; the entry point then
    gets ``<version_variable>="<version>"`` prepended so the running app can
    report which bundle it came from.
    """

    def __init__(
            self,
            files: Sequence[ScriptFile],
            entry_point: str = DEFAULT_ENTRY_POINT,
            version_variable: str = DEFAULT_VERSION_VARIABLE,
    ):
        """Initialize queue.

        Args:
            files: Escaped files in deployment order
            entry_point: Name of the file that receives the version assignment
            version_variable: Name of the version variable on the device

        Raises:
            ValueError: If files is empty or entry_point is not among them
        """
        if not files:
            raise ValueError("No scripts to deploy")
        if entry_point not in {f.name for f in files}:
            raise ValueError(f"Entry point {entry_point} is not among the scripts")

        self.entry_point = entry_point
        self.version_variable = version_variable
        self.version = compute_version(files)

        assignment = escape_script(f'{version_variable}="{self.version}"\n')
        self.files: tuple[ScriptFile, ...] = tuple(
            replace(f, content=assignment + f.content) if f.name == entry_point else f
            for f in files
        )

        _LOGGER.debug("Prepared %d scripts, version %s", len(self.files), self.version)

    @classmethod
    def from_sources(
            cls,
            sources: Iterable[tuple[str, str]],
            entry_point: str = DEFAULT_ENTRY_POINT,
            version_variable: str = DEFAULT_VERSION_VARIABLE,
    ) -> ScriptDeploymentQueue:
        """Build from (filename, raw source) pairs, escaping each source."""
        files = [ScriptFile(name, escape_script(source)) for name, source in sources]
        return cls(files, entry_point=entry_point, version_variable=version_variable)

    @classmethod
    def from_directory(
            cls,
            directory: str | Path,
            names: Sequence[str] = DEFAULT_SCRIPT_NAMES,
            entry_point: str = DEFAULT_ENTRY_POINT,
            version_variable: str = DEFAULT_VERSION_VARIABLE,
    ) -> ScriptDeploymentQueue:
        """Load ``<name>.py`` for each logical script name from a directory.

        Raises:
            FileNotFoundError: If a script is missing
        """
        directory = Path(directory)
        sources = []
        for name in names:
            filename = f"{name}.py"
            sources.append((filename, (directory / filename).read_text(encoding="utf-8")))
        return cls.from_sources(sources, entry_point=entry_point, version_variable=version_variable)

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self):
        return iter(self.files)


def dequeue(pending: tuple[ScriptFile, ...]) -> tuple[ScriptFile | None, tuple[ScriptFile, ...]]:
    """Take the front file.

    Returns:
        (next file or None when empty, remaining files)
    """
    if not pending:
        return None, ()
    return pending[0], pending[1:]
