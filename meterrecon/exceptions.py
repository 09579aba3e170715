class ReconError(Exception): ...


class SourceFetchError(ReconError):
    """A feed failed while being drained; the run is aborted."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class RecordError(ReconError): ...


class OutOfRangeSample(RecordError): ...


class MalformedRecord(RecordError): ...


class StoreError(ReconError): ...


class OwnershipError(StoreError): ...


class WriteOnceError(StoreError): ...


class TariffError(ReconError): ...


class ConfigError(ReconError): ...


def require(condition: bool, message: str, exc: type[ReconError] = ReconError):
    """Raise the given exception if condition is False."""
    if not condition:
        raise exc(message)
