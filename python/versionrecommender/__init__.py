"""versionrecommender - version recommendations from Ivy, Maven and properties sources."""

__version__ = "1.0.0"
