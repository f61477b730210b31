"""School calendar engine.

Day layout, drag-and-drop rescheduling rules, the activity drawer with URL
sync, and modal coordination for the school calendar screens.
"""

from src.calendar_engine.dnd import MoveActor, plan_move, validate_move
from src.calendar_engine.drawer import DrawerStateStore, MemoryLocation
from src.calendar_engine.modals import ModalCoordinator, ModalId
from src.calendar_engine.models import CalendarItem, DayBucket, Kind, Role, Viewer
from src.calendar_engine.normalize import normalize, normalize_all
from src.calendar_engine.schedule import compute_day_buckets
from src.calendar_engine.session import CalendarSession

__all__ = [
    "CalendarItem",
    "CalendarSession",
    "DayBucket",
    "DrawerStateStore",
    "Kind",
    "MemoryLocation",
    "ModalCoordinator",
    "ModalId",
    "MoveActor",
    "Role",
    "Viewer",
    "compute_day_buckets",
    "normalize",
    "normalize_all",
    "plan_move",
    "validate_move",
]
