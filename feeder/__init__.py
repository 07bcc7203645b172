"""Feeder - distributed, at-most-once file-intake gate."""

__version__ = "0.1.0"
