"""minisheet -- spreadsheet editor engine with A1 formulas."""

__version__ = "0.1.0"
