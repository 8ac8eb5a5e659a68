"""envsync — keep a schema of secret names in sync across platforms."""

__version__ = "0.1.0"
