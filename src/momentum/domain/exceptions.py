class MomentumEngineError(Exception):
    """Base class for errors raised by the momentum engine."""
    pass


class MomentumConfigurationError(MomentumEngineError, ValueError):
    """Raised when the engine is configured with an invalid timeframe, interval count or limit."""
    pass


class MalformedEventError(MomentumEngineError, ValueError):
    """Raised when an inbound payload lacks an entity id or a usable timestamp."""
    pass


class EngineShutdownError(MomentumEngineError, RuntimeError):
    """Raised when a shut down engine is used."""
    pass
