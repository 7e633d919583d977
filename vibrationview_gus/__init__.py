"""VibrationVIEW GUS adapter - exposes a vibration controller to a GUS test host."""

__version__ = "1.0.0"
