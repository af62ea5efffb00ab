"""tasklink: find the Todoist task that already tracks a Nightwatch issue."""

__version__ = "0.3.0"
