"""Hospital payroll computation core."""

__version__ = "1.0.0"
