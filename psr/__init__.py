"""Release automation for a DSC compliance module."""

__version__ = "0.3.0"
