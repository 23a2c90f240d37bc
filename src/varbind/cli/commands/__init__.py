"""
CLI Commands Package.

Each command is implemented in its own module for maintainability.
"""

from . import check
from . import impact
from . import init
from . import render
from . import resolve

__all__ = [
    "check",
    "impact",
    "init",
    "render",
    "resolve",
]
