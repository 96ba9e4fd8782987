"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import time

# Attendance marks are stored as a timestamp pinned to midday of the day.
CHECK_IN_TIME = time(12, 0)

# date.weekday() numbering: Monday=0 ... Sunday=6.
DEFAULT_WEEK_START = 6

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

MSG_MISSING_FIELDS = "Fill in all fields."
MSG_SLOT_TAKEN = "An active event is already scheduled for this date and time."
MSG_COULD_NOT_LOAD = "Could not load data. Try again."
MSG_COULD_NOT_SAVE = "Could not save changes. Try again."
MSG_UNSAVED_CHANGES = "You have unsaved changes. Discard them and change the date?"
MSG_CONFIRM_DELETE = "Are you sure you want to delete this event?"
MSG_CONFIRM_DENY = "Deny this event?"
