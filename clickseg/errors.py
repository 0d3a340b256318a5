"""Exception types raised by the interactive segmentation core."""
from __future__ import annotations


class ClickSegError(Exception):
    """Base class for every error raised by :mod:`clickseg`."""


class InvalidImageError(ClickSegError, ValueError):
    """The image is empty, malformed, or could not be decoded."""


class InvalidPointError(ClickSegError, ValueError):
    """A prompt point is non-finite or lies outside the loaded image."""


class InvalidTensorError(ClickSegError, ValueError):
    """A tensor has a shape the codec cannot work with."""


class NotReadyError(ClickSegError, RuntimeError):
    """An operation was requested before its prerequisite stage completed."""


class SessionBusyError(NotReadyError):
    """A decode is still outstanding; the caller should wait for it."""


class EncodeFailedError(ClickSegError):
    """The inference engine rejected or failed the encoder call."""


class DecodeFailedError(ClickSegError):
    """The inference engine rejected or failed the decoder call."""


class SupersededError(ClickSegError):
    """The result belongs to an image that has since been replaced."""

    def __init__(self, generation: int, current_generation: int) -> None:
        super().__init__(
            f"result for image #{generation} discarded; image #{current_generation} is loaded"
        )
        self.generation = generation
        self.current_generation = current_generation


class EngineConfigurationError(ClickSegError):
    """The inference engine backend could not be set up from its configuration."""
