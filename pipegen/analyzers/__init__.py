"""Manifest readers and signature tables used by the repository classifier."""

from __future__ import annotations

from .manifests import (
    ManifestData,
    load_dotnet_manifest,
    load_go_manifest,
    load_java_manifest,
    load_node_manifest,
    load_python_manifest,
)
from .signatures import (
    BUILD_TOOL_SIGNATURES,
    FRAMEWORK_SIGNATURES,
    SignatureContext,
    first_match,
)

__all__ = [
    "BUILD_TOOL_SIGNATURES",
    "FRAMEWORK_SIGNATURES",
    "ManifestData",
    "SignatureContext",
    "first_match",
    "load_dotnet_manifest",
    "load_go_manifest",
    "load_java_manifest",
    "load_node_manifest",
    "load_python_manifest",
]
