"""Process exit codes of the ``mangarr`` commands."""

SUCCESS = 0
# unreadable config, bad download location, conflicting options
USER_ERROR = 2
# malformed source identifiers or chapter selection
VALIDATION_ERROR = 3
# provider unreachable, failed chapters or an interrupted run
EXTERNAL_FAILURE = 4
INTERNAL_BUG = 5
