"""repo-digest: HTML digests of GitHub pull request activity."""

__version__ = "0.1.0"
