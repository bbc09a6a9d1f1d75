from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class DuplicateStudentError(ValidationError):
    """Same mobile number and same name as an existing student."""


class PossibleSiblingError(ValidationError):
    """Mobile number already belongs to another student; caller must confirm."""

    def __init__(self, message: str, *, existing_student_id: str, existing_name: str):
        super().__init__(message)
        self.existing_student_id = existing_student_id
        self.existing_name = existing_name


class DuplicateBillingCycleError(ValidationError):
    """A payment for the same billing month already exists for the student."""


class DataShapeError(DomainError):
    """Raised when imported data (backup JSON, remote rows) is malformed."""


class GatewayError(DomainError):
    """Raised by remote table gateways when a call fails."""


class SyncUnavailableError(DomainError):
    """Operation needs a live remote connection and none is available."""


class RemoteUnreachableError(GatewayError):
    """The remote could not be reached at all (network down, host refused)."""
