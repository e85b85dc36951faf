"""Exception hierarchy for DeepScroll."""

from __future__ import annotations


class DeepScrollError(Exception):
    """Base class for all DeepScroll errors."""


class InjectionError(DeepScrollError):
    """The page refused script evaluation (restricted or closed page)."""


class StitchError(DeepScrollError):
    """A tile could not be loaded or decoded; compositing was aborted."""


class NoCaptureDataError(DeepScrollError):
    """There is nothing to stitch or edit."""

    def __init__(self, message: str = "No capture data found") -> None:
        super().__init__(message)


class ProtocolError(DeepScrollError):
    """A message or editor payload could not be parsed."""
