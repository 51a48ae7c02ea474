"""anonboard -- pseudonymous identity and moderation engine for a campus community board."""

__version__ = "0.1.0"
