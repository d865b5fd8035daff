"""
Base Service Interface

Every pipeline stage inherits from BaseService, and every collaborator
failure is expressed through the ServiceError hierarchy below.
"""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseService(ABC, Generic[InputT, OutputT]):
    """
    Base class for pipeline services.

    Each service:
    - Has a defined input type
    - Has a defined output type
    - Can check its health
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name for logging and error attribution."""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """
        Run the service's main function.

        Raises:
            ServiceError: If execution fails
        """
        pass

    async def health_check(self) -> bool:
        """Pure-computation services are always healthy."""
        return True


# =============================================================================
# ERRORS
# =============================================================================


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, service_name: str, message: str, details: Optional[dict] = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")

    def to_dict(self) -> dict:
        return {
            "service": self.service_name,
            "error": self.message,
            "details": self.details,
        }


class ValidationError(ServiceError):
    """Bad input: missing identifiers, empty or too-short series."""
    pass


class ExternalAPIError(ServiceError):
    """A collaborator (market data, LLM provider) failed."""
    pass


class RateLimitError(ExternalAPIError):
    """Collaborator rejected the call with a rate limit."""
    pass


class AdvisoryParseError(ExternalAPIError):
    """Advisory service answered, but the answer is not a usable plan."""
    pass
