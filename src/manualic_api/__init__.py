"""Manualic API: block-based document versioning and workspace access control."""

__version__ = "0.1.0"
