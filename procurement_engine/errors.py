"""Exception hierarchy for the procurement risk engine."""


class ProcurementEngineError(Exception):
    """Base class for all engine errors."""


class MalformedRecordError(ProcurementEngineError):
    """A record is missing its identity (vendor id, item id)."""


class ResponseParseError(ProcurementEngineError):
    """External provider text did not contain a usable JSON object."""


class ProviderError(ProcurementEngineError):
    """External provider was unreachable, timed out, or returned nothing."""
