"""Result type returned by the AI content generators."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class GenerationResult(Generic[T]):
    """Either an AI-produced value or a fallback value with the reason it was used."""

    value: T
    fallback_reason: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.fallback_reason is not None

    @classmethod
    def ok(cls, value: T) -> 'GenerationResult[T]':
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, reason: str) -> 'GenerationResult[T]':
        return cls(value=value, fallback_reason=reason)
