from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.enums import DayOfWeek, LifecycleStatus, PeriodType  # noqa: F401
from app.models.leave_request import ApplicantType, LeaveRequest, LeaveStatus  # noqa: F401
from app.models.period_swap import PeriodSwapRequest, SwapStatus  # noqa: F401
from app.models.room import Room, RoomType  # noqa: F401
from app.models.school_class import SchoolClass  # noqa: F401
from app.models.subject import Subject  # noqa: F401
from app.models.substitute_assignment import SubstituteAssignment, SubstituteStatus  # noqa: F401
from app.models.teacher import Teacher  # noqa: F401
from app.models.timetable_config import TimetableConfig  # noqa: F401
from app.models.timetable_entry import TimetableEntry  # noqa: F401
