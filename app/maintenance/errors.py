"""Error kinds raised by the maintenance scheduling core."""


class MaintenanceScheduleError(Exception):
    """Base error; ``status_code`` is what the HTTP layer answers with."""
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class InvalidDepartmentError(MaintenanceScheduleError):
    def __init__(self, department):
        self.department = department
        valid = ", ".join(["HSM", "HBM", "PTM", "RESCHEDULE"])
        super().__init__(f"Invalid department: {department!r}. Must be one of: {valid}")


class InvalidDateError(MaintenanceScheduleError):
    def __init__(self, value, reason=None):
        self.value = value
        message = f"Invalid date: {value!r}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class InvalidStatusError(MaintenanceScheduleError):
    def __init__(self, status):
        self.status = status
        super().__init__(
            f"Invalid status: {status!r}. Must be one of: PENDING, COMPLETED, MISSED, RESCHEDULED"
        )


class NotFoundError(MaintenanceScheduleError):
    """No tracking record (or crane) for the requested key. Initialize the month first."""
    status_code = 404
