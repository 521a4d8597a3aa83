"""ext-install — minimal-layer installer for PHP runtime extensions."""

__version__ = "0.3.0"
