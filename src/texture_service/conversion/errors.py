class TextureServiceError(Exception):
    """Base class for conversion pipeline errors."""


class MalformedInput(TextureServiceError):
    """Input is too short to carry a BTX header."""


class StagingFailure(TextureServiceError):
    """Reading or writing a workspace file failed."""


class ConversionFailed(TextureServiceError):
    """The external tool failed, timed out or produced no output."""


class NotFound(TextureServiceError):
    """Requested artifact is absent or was already downloaded."""
