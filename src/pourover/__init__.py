"""pourover: a pour-over brewing schedule and cue engine."""

__version__ = "0.1.0"
