"""Exception types shared by the requirements tasks."""


class ConfigError(ValueError):
    """Raised when the kit configuration is invalid."""


class MissingInputError(FileNotFoundError):
    """Raised when a required input (workbook or catalogue) cannot be found."""
