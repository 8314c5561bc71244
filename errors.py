"""Errors that end a check-outdated run."""

import json


class CheckOutdatedError(Exception):
    """Base class for every error reported to the user instead of a traceback."""


class SourceInvocationError(CheckOutdatedError):
    """npm could not be run, or its output is not usable JSON.

    `details` holds the diagnostic fields npm reported (code, summary, detail)
    when it answered with an error object.
    """

    def __init__(self, message, details=None, output=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.output = output


class UnexpectedResponseShape(CheckOutdatedError):
    """The npm response parsed, but is not a mapping of package names."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Unexpected JSON response: {json.dumps(value)}")


class ArgumentsError(CheckOutdatedError):
    """Unknown command-line argument or invalid argument value."""


class ConfigError(CheckOutdatedError):
    """Unreadable or invalid configuration file."""
