"""Step registry and manifest parsing built on top of pydantic models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .models import (
    AssertTextStep,
    AssertUrlStep,
    AssertVisibleStep,
    ClickStep,
    InputStep,
    KeydownStep,
    ScrollStep,
    StepBase,
)


class ManifestError(ValueError):
    """Raised when a recorded manifest cannot be turned into typed steps."""

    def __init__(self, message: str, *, index: int | None = None, details: List[Dict[str, Any]] | None = None):
        super().__init__(message)
        self.index = index
        self.details = details or []


@dataclass(slots=True)
class StepSpec:
    name: str
    model: Type[StepBase]
    description: str | None = None

    def to_metadata(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "requires_locator": self.model.__requires_locator__,
            "description": self.description or "",
        }


S = TypeVar("S", bound=StepBase)


class StepRegistry:
    """Central registry holding the step variants understood by the runner."""

    def __init__(self) -> None:
        self._steps: Dict[str, StepSpec] = {}

    def register(self, model: Type[S], *, description: str | None = None) -> Type[S]:
        if not issubclass(model, StepBase):
            raise TypeError("model must subclass StepBase")
        name = model.__step_type__
        self._steps[name] = StepSpec(name=name, model=model, description=description)
        return model

    def parse_step(self, data: Any) -> StepBase:
        if isinstance(data, StepBase):
            return data
        if not isinstance(data, dict):
            raise ValueError("step must be an object")
        step_type = data.get("type")
        if not isinstance(step_type, str) or not step_type.strip():
            raise ValueError("step is missing 'type'")
        normalised = step_type.strip().upper()
        if normalised not in self._steps:
            raise ValueError(f"Unknown step type '{step_type}'")
        payload = dict(data)
        payload["type"] = normalised
        return self._steps[normalised].model.model_validate(payload)

    def schema(self) -> Dict[str, Any]:
        return {name: spec.to_metadata() for name, spec in self._steps.items()}


registry = StepRegistry()

registry.register(ClickStep, description="Click the located element")
registry.register(InputStep, description="Overwrite the located field with value")
registry.register(KeydownStep, description="Press a key on the focused element")
registry.register(ScrollStep, description="Recorded scroll position, informational only")
registry.register(AssertUrlStep, description="Current URL contains value")
registry.register(AssertTextStep, description="Visible page text contains value")
registry.register(AssertVisibleStep, description="Located element becomes visible")


class Manifest(BaseModel):
    """Ordered, immutable list of typed steps."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    steps: List[StepBase] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.steps)

    def is_last(self, index: int) -> bool:
        return index == len(self.steps) - 1


def _error_details(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {
            "field": ".".join(str(loc) for loc in err.get("loc", ())),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]


def parse_manifest(steps: Any) -> Manifest:
    """Validate a raw JSON array of recorded steps.

    Raises :class:`ManifestError` naming the first offending step.
    """

    if not isinstance(steps, list):
        raise ManifestError("Invalid steps format")
    parsed: List[StepBase] = []
    for index, raw in enumerate(steps):
        try:
            parsed.append(registry.parse_step(raw))
        except ValidationError as exc:
            details = _error_details(exc)
            first = details[0]["message"] if details else str(exc)
            raise ManifestError(f"Step {index + 1}: {first}", index=index, details=details) from exc
        except ValueError as exc:
            raise ManifestError(f"Step {index + 1}: {exc}", index=index) from exc
    return Manifest(steps=parsed)
