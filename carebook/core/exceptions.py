"""Custom application exceptions."""

from uuid import UUID


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ValidationException(AppException):
    """Validation error exception."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 422 status code."""
        super().__init__(message, status_code=422)


# ============================================================================
# Booking errors
# ============================================================================


class SlotUnavailable(ConflictException):
    """The slot is already booked or no longer exists."""

    def __init__(self, message: str = "This slot is no longer available. Please select another time."):
        super().__init__(message)


class SlotNotFound(NotFoundException):
    """The availability slot could not be resolved."""

    def __init__(self, message: str = "Availability slot not found. It may have been deleted."):
        super().__init__(message)


class MissingSlotReference(BadRequestException):
    """An appointment without a slot reference cannot be released."""

    def __init__(
        self,
        message: str = "Cannot cancel this appointment, availability info is missing.",
    ):
        super().__init__(message)


class SlotInUse(ConflictException):
    """A booked slot cannot be deleted."""

    def __init__(self, message: str = "This slot is booked and cannot be removed."):
        super().__init__(message)


class AppointmentNotFound(NotFoundException):
    """Appointment does not exist."""

    def __init__(self, message: str = "Appointment not found"):
        super().__init__(message)


class AppointmentNotActive(ConflictException):
    """Appointment already left the booked state."""

    def __init__(self, status: str):
        self.current_status = status
        super().__init__(f"Appointment is already {status}.")


class AppointmentNotPast(BadRequestException):
    """Appointment cannot be completed before it takes place."""

    def __init__(self, message: str = "Only past appointments can be marked as completed."):
        super().__init__(message)


class PaymentFailed(AppException):
    """The payment gate rejected the booking."""

    def __init__(self, message: str = "Payment could not be processed."):
        super().__init__(message, status_code=402)


class AvailabilityPublishError(AppException):
    """Publishing stopped part-way; the created slots are kept."""

    def __init__(self, created_ids: list[UUID], message: str = "Failed to save availability."):
        self.created_ids = created_ids
        super().__init__(message, status_code=500)


class BookingStoreError(AppException):
    """The underlying store failed and the transaction was rolled back."""

    def __init__(self, message: str = "Something went wrong. Please try again."):
        super().__init__(message, status_code=503)
