"""Project error hierarchy and relay failure values."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PromptGateError(Exception):
    """Base error."""


class ConfigurationError(PromptGateError):
    """Raised at startup when settings cannot produce a working gateway."""


class FailureKind(str, Enum):
    FILTERED = "filtered"
    UPSTREAM_ERROR = "upstream_error"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    INTERNAL = "internal"


@dataclass(frozen=True, slots=True)
class GatewayFailure:
    """Outcome of a relay step that did not produce an upstream response.

    Failures are returned, not raised, so the orchestrator handles every kind
    in one place.
    """

    kind: FailureKind
    message: str
    upstream_status: int | None = None
    upstream_body: str = ""
