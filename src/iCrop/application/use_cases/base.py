from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar


@dataclass(frozen=True)
class UseCaseRequest:
    """Input DTO base for crop use cases."""


@dataclass(frozen=True)
class UseCaseResponse:
    """Output DTO base; failed steps set ``success`` to False and fill ``error``."""
    success: bool = True
    error: Optional[str] = None


RequestT = TypeVar("RequestT", bound=UseCaseRequest)
ResponseT = TypeVar("ResponseT", bound=UseCaseResponse)


class UseCase(ABC, Generic[RequestT, ResponseT]):
    """A single application operation driven by a request DTO."""

    @abstractmethod
    def execute(self, request: RequestT) -> ResponseT:
        ...
