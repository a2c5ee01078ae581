"""
Schedule cache for guid → import reference resolution.
"""

from .cache import ScheduleCache
from .errors import ScheduleError, FetchError, ScheduleFormatError
from .models import Catalog, ScheduleEvent

__all__ = [
    "ScheduleCache",
    "Catalog",
    "ScheduleEvent",
    "ScheduleError",
    "FetchError",
    "ScheduleFormatError",
]
