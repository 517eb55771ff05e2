"""Custom application exceptions."""


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


class UnauthorizedException(AppException):
    """Unauthorized access exception."""

    def __init__(self, message: str = "Not authorized"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ValidationException(BadRequestException):
    """Missing or malformed input."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 400 status code."""
        super().__init__(message)


class ConflictException(AppException):
    """Conflict exception.

    Duplicate emails and double bookings are reported as 400, matching the
    rest of the client-facing validation errors.
    """

    def __init__(self, message: str = "Conflict"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class InvalidTargetException(BadRequestException):
    """Booking target is not a doctor account."""

    def __init__(self, message: str = "Invalid doctor"):
        """Initialize with 400 status code."""
        super().__init__(message)


class SlotUnavailableException(BadRequestException):
    """Requested slot is not published in the doctor's ledger."""

    def __init__(self, message: str = "This slot is not available"):
        """Initialize with 400 status code."""
        super().__init__(message)


class SlotConflictException(ConflictException):
    """Requested slot already holds a pending or confirmed appointment."""

    def __init__(
        self,
        message: str = "This slot is already booked. Please choose another time.",
    ):
        """Initialize with 400 status code."""
        super().__init__(message)


class InvalidTransitionException(BadRequestException):
    """Appointment status change not allowed from the current status."""

    def __init__(self, current_status: str, message: str | None = None):
        """Initialize with the status the appointment is currently in."""
        self.current_status = current_status
        super().__init__(message or f"Appointment is already {current_status}")
