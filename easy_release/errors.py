"""Exception types for cargo-easy-release.

Every error carries a human-readable message and an optional hint with a
suggested fix, so the CLI can print both through ``fatal()``.

Workspace-level errors (``MetadataError``, ``MalformedWorkspace``) are fatal
and abort startup. Manifest errors are raised per package by the bump
propagator and leave that package's files untouched.
"""

from __future__ import annotations


class EasyReleaseError(Exception):
    """Base class for all errors raised by easy_release."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message}\n  hint: {self.hint}"
        return self.message


class MetadataError(EasyReleaseError):
    """``cargo metadata`` could not be run or returned unusable output."""


class MalformedWorkspace(EasyReleaseError):
    """The workspace cannot be turned into a dependency graph.

    Raised for a listed member missing from the package list, two members
    sharing a name, or a dependency cycle between members.
    """


class UnknownPackage(EasyReleaseError):
    """An id or name that is not a member of the workspace."""


class ManifestError(EasyReleaseError):
    """Base class for Cargo.toml read/parse/write failures.

    Attributes:
        path: The manifest the failure refers to.
    """

    def __init__(self, path: object, message: str, hint: str | None = None) -> None:
        super().__init__(message, hint)
        self.path = path


class ManifestReadError(ManifestError):
    """A manifest file is missing or unreadable."""


class ManifestParseError(ManifestError):
    """A manifest is not valid TOML or lacks a field the edit needs."""


class ManifestWriteError(ManifestError):
    """A manifest could not be written back to disk."""


class PublishInvocationError(EasyReleaseError):
    """``cargo publish`` failed to spawn or exited non-zero.

    Attributes:
        returncode: Exit status, or None if the process never started.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class PublishInProgress(EasyReleaseError):
    """A publish for this package is already running."""
