"""Exceptions raised by ecolutils analyses."""


class EcolUtilsError(Exception):
    """Base class for all ecolutils errors."""


class ValidationError(EcolUtilsError, ValueError):
    """An input violates a precondition of the requested analysis."""


class InvalidCommunityError(ValidationError):
    """Community matrix has duplicated ids, negative, missing or non-integer values."""


class InvalidDepthError(ValidationError):
    """Rarefaction depth exceeds the total count of at least one sample."""

    def __init__(self, depth: int, offending: dict):
        self.depth = depth
        self.offending = offending
        detail = ", ".join(f"{sample}={total}" for sample, total in offending.items())
        super().__init__(
            f"Rarefaction depth {depth} exceeds the total count of "
            f"{len(offending)} sample(s): {detail}"
        )

    def __reduce__(self):
        return self.__class__, (self.depth, self.offending)


class InsufficientLevelsError(ValidationError):
    """Grouping factor has fewer than two distinct levels."""


class DegenerateGroupError(ValidationError):
    """A factor level has fewer than two samples."""


class InvalidWindowSizeError(ValidationError):
    """Split-window size is odd, too small or too large for the data."""


class AsymmetricMatrixError(ValidationError):
    """Dissimilarity matrix is not square, symmetric and consistently labelled."""


class DimensionMismatchError(ValidationError):
    """Community, environment, factor or dissimilarity identifiers are misaligned."""


class ReplicateGenerationError(EcolUtilsError, RuntimeError):
    """A null-model replicate could not be generated or evaluated."""

    def __init__(self, message: str, replicate: int = None):
        self.replicate = replicate
        super().__init__(message)

    def __reduce__(self):
        return self.__class__, (str(self), self.replicate)
