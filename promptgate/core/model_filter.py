"""Model-name admission filter."""

from __future__ import annotations

import re
from dataclasses import dataclass

from promptgate.core.errors import ConfigurationError

ALLOW_ALL_PATTERN = ".*"


@dataclass(frozen=True, slots=True)
class ModelFilter:
    """Compiled admission pattern, built once at startup and shared read-only."""

    compiled: re.Pattern[str]

    @classmethod
    def from_config(cls, regex: str | None) -> "ModelFilter":
        raw = regex or ""
        if not raw.strip():
            return cls(re.compile(ALLOW_ALL_PATTERN, re.DOTALL))
        try:
            return cls(re.compile(raw, re.IGNORECASE))
        except re.error as exc:
            raise ConfigurationError(f"invalid model filter regex {raw!r}: {exc}") from exc

    @property
    def pattern(self) -> str:
        return self.compiled.pattern

    def permits(self, model_name: str) -> bool:
        return self.compiled.fullmatch(model_name) is not None
