from __future__ import annotations


class CheckinError(Exception):
    """Base exception for the check-in service; carries the HTTP status it maps to."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class InvalidScan(CheckinError):
    status_code = 400
    default_message = "Scanned code is empty"


class ParticipantNotFound(CheckinError):
    status_code = 404
    default_message = "Invalid QR code"


class AlreadyCheckedIn(CheckinError):
    status_code = 400
    default_message = "Already checked in"


class Forbidden(CheckinError):
    status_code = 403
    default_message = "Admin only"


class GenerationFailed(CheckinError):
    status_code = 500
    default_message = "Error generating QR"
