"""Exceptions raised by tournagen."""


class TournagenError(Exception):
    """Base class for all tournagen errors."""


class UnknownFormatError(TournagenError, KeyError):
    """Raised when a structure is requested for a format that is not registered."""

    def __init__(self, format_type):
        self.format_type = format_type
        super().__init__(f"Tournament format '{format_type}' is not registered.")

    def __str__(self):
        return self.args[0]


class FormatAlreadyRegisteredError(TournagenError):
    def __init__(self, format_type):
        self.format_type = format_type
        super().__init__(f"Tournament format '{format_type}' is already registered.")


class ConfigLoadError(TournagenError):
    """Raised when a participants or tournament file cannot be read or parsed."""
