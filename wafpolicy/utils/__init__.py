"""Utility modules for the firewall policy adapter.

This package contains helpers shared by the command line driver.
"""

from .diff_utils import diff_attributes, format_change

__all__ = [
    "diff_attributes",
    "format_change",
]
