"""Recorded step manifests understood by the automation runner."""

from .dsl import models, registry
from .dsl.registry import Manifest, ManifestError, parse_manifest

__all__ = ["registry", "models", "Manifest", "ManifestError", "parse_manifest"]
