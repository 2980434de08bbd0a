"""
Subcommands for the neoscli tool.
"""

# import each command here to simplify registration
from .page import page

__all__ = ["page"]
