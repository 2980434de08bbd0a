"""Command line tools for the Neos CMS content repository."""

__version__ = "1.0.0"
