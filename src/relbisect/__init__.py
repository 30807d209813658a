"""relbisect - find the release where a test starts failing."""

__version__ = "0.1.0"
