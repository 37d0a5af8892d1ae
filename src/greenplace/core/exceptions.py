class GreenPlaceError(Exception):
    """Base exception for GreenPlace."""

    pass


class ProviderError(GreenPlaceError):
    """Base exception for failures of a single carbon data provider call."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"[{provider}] {message}")
        self.provider = provider
        self.message = message


class ProviderUnreachable(ProviderError):
    """Raised on transport failures, timeouts and upstream server errors."""

    pass


class InvalidProviderResponse(ProviderError):
    """Raised when a provider answers with a payload that fails schema validation."""

    pass


class ProviderRateLimited(ProviderError):
    """Raised when the upstream API throttles the caller. Transient."""

    pass


class UnsupportedRegion(ProviderError):
    """Raised when a provider has no mapping for the requested region."""

    pass


class UnknownTopology(GreenPlaceError):
    """Raised when node labels do not map to a canonical region."""

    def __init__(self, reason: str, labels: dict = None):
        super().__init__(reason)
        self.reason = reason
        self.labels = dict(labels or {})


class CarbonDataUnavailable(GreenPlaceError):
    """Raised when every configured provider failed for a region."""

    def __init__(self, region: str, kind: str, errors: list = None):
        self.region = region
        self.kind = kind
        self.errors = list(errors or [])
        detail = "; ".join(str(e) for e in self.errors) or "no providers configured"
        super().__init__(f"No {kind} carbon data for region '{region}': {detail}")
