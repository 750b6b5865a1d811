"""Typed step DSL."""

from .models import (
    ASSERTION_TYPES,
    AssertTextStep,
    AssertUrlStep,
    AssertVisibleStep,
    ClickStep,
    InputStep,
    KeydownStep,
    ScrollStep,
    StepBase,
)
from .registry import Manifest, ManifestError, StepRegistry, parse_manifest, registry

__all__ = [
    "ASSERTION_TYPES",
    "AssertTextStep",
    "AssertUrlStep",
    "AssertVisibleStep",
    "ClickStep",
    "InputStep",
    "KeydownStep",
    "Manifest",
    "ManifestError",
    "ScrollStep",
    "StepBase",
    "StepRegistry",
    "parse_manifest",
    "registry",
]
