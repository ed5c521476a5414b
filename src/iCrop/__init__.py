"""Cover-preserving affine crop engine."""

__version__ = "0.1.0"
