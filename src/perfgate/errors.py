from __future__ import annotations


class PerfgateError(Exception):
    """Base class for errors raised by perfgate."""


class ConfigurationError(PerfgateError, ValueError):
    """Invalid comparison or reporting parameters."""


class LoadError(PerfgateError):
    """A result document or stored run could not be loaded."""


class DeliveryError(PerfgateError):
    """A notification could not be delivered."""
