"""Domain exception classes for the enrollment service.

These are raised by service-layer code and caught by controllers
to map to appropriate HTTP responses.
"""


class CourseNotFoundError(Exception):
    """Raised when a course cannot be found by ID."""

    def __init__(self, identifier: str = ""):
        self.identifier = identifier
        super().__init__(f"Course not found: {identifier}")


class CourseNotAvailableError(Exception):
    """Raised when the course is not ACTIVE or its enrollment window is closed."""

    def __init__(self, reason: str = "Course is not open for enrollment."):
        self.reason = reason
        super().__init__(reason)


class AlreadyEnrolledError(Exception):
    """Raised when the student holds an ACTIVE or COMPLETED enrollment."""

    def __init__(self, reason: str = "Already enrolled in this course."):
        self.reason = reason
        super().__init__(reason)


class AlreadyWaitlistedError(Exception):
    """Raised when the student already holds an active waitlist entry."""

    def __init__(self, position: int | None = None):
        self.position = position
        super().__init__(f"Already on the waitlist for this course (position {position}).")


class PrerequisitesNotMetError(Exception):
    def __init__(self, missing: list[str] | None = None):
        self.missing = missing or []
        super().__init__(f"Prerequisites not met: {', '.join(self.missing)}")


class NotEnrolledError(Exception):
    """Raised when an operation requires an ACTIVE enrollment that does not exist."""


class NotOnWaitlistError(Exception):
    """Raised when withdrawing from a waitlist the student is not on."""


class CapacityRaceLostError(Exception):
    """The seat claim lost a concurrent race. Internal; retried once as a waitlist enqueue."""


class EnrollmentContentionError(Exception):
    """Raised when the retry after a lost seat race also fails."""


class UnauthorizedActorError(Exception):
    """Raised when the actor may not manage enrollments for the course."""


class StudentNotFoundError(Exception):
    """Raised when the user directory has no active student with the given id."""

    def __init__(self, student_id: str = ""):
        self.student_id = student_id
        super().__init__(f"Student not found or inactive: {student_id}")


class UserDirectoryUnavailableError(Exception):
    """Raised when the identity service cannot be reached."""
