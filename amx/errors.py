"""Exception taxonomy for combination lifecycle and export operations.

Single-item operations raise these directly. Batch operations
(``generate_all``, ``export_many``) never raise them for individual items;
failures are captured as per-item outcomes instead.
"""

from __future__ import annotations


class MatrixError(Exception):
    """Base class for all errors raised by the amx package."""


class ValidationError(MatrixError, ValueError):
    """Malformed combination construction (empty or duplicate variable assignment)."""


class RangeError(MatrixError, ValueError):
    """A numeric value fell outside its permitted range (e.g. engagement score)."""


class NotFoundError(MatrixError, KeyError):
    """No combination exists with the requested id."""

    def __init__(self, combination_id: str):
        super().__init__(combination_id)
        self.combination_id = combination_id

    def __str__(self) -> str:
        return f"Combination not found: {self.combination_id}"


class ConflictError(MatrixError):
    """A transition was attempted against a combination in an incompatible state."""

    def __init__(self, combination_id: str, status: str, message: str | None = None):
        self.combination_id = combination_id
        self.status = status
        super().__init__(message or f"Combination {combination_id} is {status}")


class NotReadyError(ConflictError):
    """Export requested for a combination that has not completed rendering."""

    def __init__(self, combination_id: str, status: str):
        super().__init__(
            combination_id,
            status,
            f"Combination {combination_id} is {status}; only completed combinations can be exported",
        )


class UnknownPlatformError(MatrixError, LookupError):
    """Export targets a platform/placement pair absent from the registry."""

    def __init__(self, platform: str, placement: str | None = None):
        self.platform = platform
        self.placement = placement
        label = f"{platform}/{placement}" if placement else platform
        super().__init__(f"Unknown platform or placement: {label}")


class PlatformConstraintError(MatrixError):
    """A combination violates the technical limits of the target platform."""

    def __init__(self, combination_id: str, violations: list[str]):
        self.combination_id = combination_id
        self.violations = violations
        super().__init__(f"Combination {combination_id} violates platform limits: " + "; ".join(violations))


class RenderSubmitError(MatrixError):
    """The render backend rejected or failed to accept a generation request."""


class MediaFetchError(MatrixError):
    """Media for a combination could not be fetched through the proxy."""


class DistributionError(MatrixError):
    """The distribution service could not be reached."""


class ScoringError(MatrixError):
    """The scoring service could not produce engagement scores."""
