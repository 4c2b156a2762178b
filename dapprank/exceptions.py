"""DappRank exception hierarchy."""


class DappRankError(Exception):
    """Base exception for all DappRank errors."""
    pass


class StoreError(DappRankError):
    """Raised when the content store or IPFS node cannot serve a request."""
    pass


class ContenthashError(DappRankError):
    """Raised when an on-chain contenthash cannot be decoded or resolved."""
    pass


class ClassifierError(DappRankError):
    """Base exception for failures of the script classifier."""
    pass


class ClassifierParseError(ClassifierError):
    """Raised when a classifier response is neither JSON nor fenced JSON."""
    pass


class RateLimitError(ClassifierError):
    """Raised when the classifier rejects a request with a rate limit."""
    pass


class QuotaExhaustedError(ClassifierError):
    """Raised when the classifier quota is used up. Never retried."""
    pass


class ContextOverflowError(ClassifierError):
    """Raised when a script exceeds the classifier's context window."""
    pass


class ReportSchemaError(DappRankError):
    """Raised when a report field is set to a value of the wrong shape."""
    pass


class ReportExistsError(DappRankError):
    """Raised when writing over a committed report without force."""
    pass


class ReportVersionError(DappRankError):
    """Raised when a report was produced by a different analysis version."""
    pass


class ManifestMissingError(DappRankError):
    """Raised when a report references a manifest asset that is not stored."""
    pass


class GovernanceError(DappRankError):
    """Raised when the on-chain collaborator cannot be reached."""
    pass


class SubgraphError(DappRankError):
    """Raised when the ENS subgraph returns an error or an unreadable response."""
    pass


class AnalysisStepError(DappRankError):
    """Raised when a named analysis step fails."""

    def __init__(self, step: str, message: str):
        super().__init__(f"Step '{step}' failed: {message}")
        self.step = step
