"""Constants and defaults.

Note: Keep constants here to avoid magic strings spread across code.
"""

# Scope value for the aggregate view over every unit.
ALL_UNITS = "__all__"

# Record id of an attendance row that has not been persisted yet.
NEW_RECORD_ID = ""

MYSQL_DUPLICATE_ENTRY = 1062

SEARCH_RESULT_LIMIT = 15

LEAVE_WARNING = "There are unsaved attendance changes. Leave without saving?"
