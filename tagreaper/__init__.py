"""Tag Reaper - discover AWS resources by tag and delete them in dependency-safe order."""

__version__ = "0.1.0"
