class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ValidationError(AppError):
    """Raised when a request is well-formed but violates a scheduling rule."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )

class SchedulingConflictError(AppError):
    """Raised when a write would double-book a teacher, room or class section."""
    def __init__(self, message: str, conflicts: list[dict]):
        entry_ids = sorted({entry_id for item in conflicts for entry_id in item.get("entries", [])})
        super().__init__(
            message,
            status_code=409,
            details={"conflicts": conflicts, "conflicting_entry_ids": entry_ids},
        )
        self.conflicts = conflicts
        self.conflicting_entry_ids = entry_ids

class DuplicateConfigError(AppError):
    def __init__(self, academic_year: str):
        super().__init__(
            f"Timetable configuration already exists for academic year {academic_year}",
            status_code=409,
            details={"academic_year": academic_year},
        )

class DuplicateAssignmentError(AppError):
    def __init__(self, entry_id: str, on_date: str):
        super().__init__(
            "A substitute assignment already exists for this period on this date",
            status_code=409,
            details={"original_entry_id": entry_id, "date": on_date},
        )

class DuplicateSwapRequestError(AppError):
    def __init__(self, swap_id: str | None = None):
        super().__init__(
            "A swap request already exists for these periods",
            status_code=409,
            details={"existing_swap_id": swap_id} if swap_id else None,
        )

class InvalidStateError(AppError):
    """Raised when a state-machine transition is attempted from a non-eligible state."""
    def __init__(self, message: str, current_status: str | None = None):
        super().__init__(
            message,
            status_code=409,
            details={"current_status": current_status} if current_status else None,
        )

class AlreadyProcessedError(InvalidStateError):
    def __init__(self, resource_type: str, current_status: str):
        super().__init__(f"{resource_type} already processed ({current_status})", current_status=current_status)

class SubstituteBusyError(AppError):
    def __init__(self, teacher_id: str, reason: str, entry_ids: list[str] | None = None):
        super().__init__(
            f"Substitute teacher {teacher_id} is not free at this time: {reason}",
            status_code=409,
            details={"teacher_id": teacher_id, "reason": reason, "entries": entry_ids or []},
        )
        self.reason = reason

class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)

class DuplicateRoomError(AppError):
    def __init__(self, code: str):
        super().__init__(
            f"Room code {code} already exists",
            status_code=409,
            details={"code": code},
        )

class PermissionDeniedError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status_code=403)
