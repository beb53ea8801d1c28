"""fedfarm - desired-state configuration for federation service farms."""

__version__ = "0.1.0"
