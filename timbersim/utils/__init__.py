"""
timbersim utilities package.
Internal utilities - not part of public API.
"""

from . import data_input, parsers, validators

__all__ = [
    "data_input",
    "parsers",
    "validators",
]
