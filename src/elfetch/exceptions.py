"""Package fetching exceptions.

Every failure carries the offending order or recipe in its context so that
callers can report which package went wrong.
"""


class ElfetchError(Exception):
    """Base exception for package fetching operations."""

    def __init__(self, message: str, context: dict | None = None):
        """Initialize with message and optional context.

        Args:
            message: Human-readable error message
            context: Optional dict with additional context (order, recipe, paths)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


# Resolution


class UnknownPackageError(ElfetchError):
    """No menu provider knows the requested package."""


class NoRecipeError(ElfetchError):
    """Neither a provider nor an inline order produced any recipe properties."""


class MalformedOrderError(ElfetchError):
    """Order has the wrong shape, an odd override count, or unknown keywords."""


# Addressing


class UnsupportedProtocolError(ElfetchError):
    """Recipe protocol is not in the protocol table."""


class UnsupportedHostError(ElfetchError):
    """Recipe host is a symbolic name missing from the host table."""


# Repository operations


class MissingHostError(ElfetchError):
    """Recipe has no host to clone from."""


class CloneFailedError(ElfetchError):
    """git clone exited with a non-zero status."""


class InvalidRemoteSpecError(ElfetchError):
    """Remote specification has an unrecognized shape."""


class MissingRemoteError(ElfetchError):
    """Checkout requested but the recipe configures no remote."""


class AmbiguousRefSpecError(ElfetchError):
    """Both tag and branch given without a ref to decide between them."""


class CheckoutFailedError(ElfetchError):
    """git fetch or checkout exited with a non-zero status."""


class BuildStepFailedError(ElfetchError):
    """A pre-build command exited with a non-zero status."""


# Dependencies


class RepositoryNotFoundError(ElfetchError):
    """Repository directory does not exist on disk."""


class DependencyParseError(ElfetchError):
    """Declared dependencies could not be read."""


class HostVersionTooLowError(ElfetchError):
    """Package requires a newer Emacs than the one configured."""


# Orchestration and configuration


class WorkerError(ElfetchError):
    """Worker process failed, crashed, or timed out."""


class ConfigError(ElfetchError):
    """Settings file is missing required structure or has invalid values."""


class RefOverrideWarning(UserWarning):
    """A ref was given together with a branch or tag; the ref wins."""
