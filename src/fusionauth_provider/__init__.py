"""FusionAuth provider: declarative management of FusionAuth signing keys."""

__version__ = "0.1.0"
