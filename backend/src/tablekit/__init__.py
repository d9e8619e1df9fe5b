"""tablekit - declarative table/record engine."""

__version__ = "0.1.0"
