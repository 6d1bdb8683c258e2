"""Account backend for Realm Hunter and its web app, backed by a Parse-compatible record store."""

__version__ = "0.1.0"
