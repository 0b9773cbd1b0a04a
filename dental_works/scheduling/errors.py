"""Calendar error taxonomy."""


class CalendarError(Exception):
    """Base exception for calendar errors."""

    pass


class ValidationError(CalendarError):
    """Appointment form is incomplete or malformed.

    Raised before any store call. ``errors`` maps form field name to a
    user-facing message.
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Invalid appointment form: {fields}")


class StoreError(CalendarError):
    """The appointment store rejected or failed a call.

    ``str(exc)`` is the message shown to the user, unmodified.
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class StaleResponseDiscarded(CalendarError):
    """A week fetch resolved after a newer one was issued."""

    def __init__(self, seq: int, latest: int):
        self.seq = seq
        self.latest = latest
        super().__init__(f"Fetch #{seq} superseded by #{latest}")
