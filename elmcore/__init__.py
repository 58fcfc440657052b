"""ELM327-compatible OBD-II command interpreter core: AT commands, settings, framing and protocol selection."""

__version__ = "1.24.0"

__all__ = [
    "autoadapter",
    "canhistory",
    "codec",
    "collector",
    "commands",
    "config",
    "ecumsg",
    "interpreter",
    "j1939conn",
    "profile",
    "protocols",
    "timeouts",
]