"""dep-lens: dependency tree inspector."""

__version__ = "1.0.0"
