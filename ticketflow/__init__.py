"""ticketflow: start, review and release work tracked in Jira from the command line."""

__version__ = "0.1.0"
