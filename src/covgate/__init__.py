"""covgate: coverage threshold checks for JavaScript and TypeScript sources."""

__version__ = "0.3.0"
