"""photocull: keyboard-driven photo culling with perceptual duplicate detection."""

__version__ = "0.1.0"
