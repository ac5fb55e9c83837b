"""
Error types raised by the simulator.

Only start-up can fail: every problem is reported once, from the ``Runner``
constructor, as a single ``InitializationError``. Tick and input handlers are
infallible; a ``ReentrancyError`` there means the host broke the serial
delivery contract.
"""


class PhysSimError(Exception):
    """Base class for simulator errors."""


class InitializationError(PhysSimError):
    """Start-up failed.

    ``stage`` names what was being acquired ("environment", "shader",
    "program", "vertex_array", "buffer", "timer" or "input") and ``log``
    holds the backend diagnostic, if any.
    """
    def __init__(self, stage, message, log=None):
        super().__init__(message)
        self.stage = stage
        self.message = message
        self.log = log

    def __str__(self):
        text = f"[{self.stage}] {self.message}"
        if self.log:
            text += f"\n{self.log}"
        return text


class ReentrancyError(PhysSimError):
    """Shared state was entered while already held."""


class ConfigError(PhysSimError):
    """Invalid configuration value."""
