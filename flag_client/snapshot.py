"""
Snapshot parsing and serialization.

A Snapshot is one immutable generation of the flag tree. It is built once
per reload from the raw payload and is never mutated afterwards; the next
reload produces a new Snapshot instead.

Wire format::

    {
      "dcdr": {
        "info": {"current_sha": "abc123"},
        "features": {
          "default": {"new_ui": true, "rollout": 0.3},
          "region": {"eu": {"new_ui": false}}
        }
      }
    }
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ParseError
from .flag_value import FlagValue, ScopeNode, scope_node


logger = logging.getLogger(__name__)

ROOT_KEY = "dcdr"
DEFAULT_SCOPE = "default"
SCOPE_SEPARATOR = "/"

Payload = Union[bytes, bytearray, str]


class Info(BaseModel):
    """Snapshot metadata."""
    model_config = ConfigDict(extra="ignore")

    current_sha: str = Field(default="", description="Content version of the flag set")


class Root(BaseModel):
    model_config = ConfigDict(extra="ignore")

    info: Optional[Info] = None
    features: Optional[Dict[str, Dict[str, Any]]] = None


class FeatureMapDocument(BaseModel):
    """Top-level document. All flag data lives under a single root key."""
    model_config = ConfigDict(extra="ignore")

    dcdr: Root


@dataclass(frozen=True)
class Snapshot:
    """
    Immutable, fully parsed flag tree.

    Attributes:
        version: Opaque content identifier, empty when the payload has none
        root: Top-level scope node; its children are the named scopes
        digest: SHA-256 of the payload this snapshot was parsed from
    """

    version: str
    root: ScopeNode
    digest: str = ""

    @property
    def tree(self) -> Mapping[str, FlagValue]:
        """Mapping of top-level scope name to its node."""
        return self.root.children

    def to_dict(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {}
        if self.version:
            info["current_sha"] = self.version
        return {ROOT_KEY: {"info": info, "features": self.root.to_raw()}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def _payload_digest(raw: Payload) -> str:
    data = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)
    return hashlib.sha256(data).hexdigest()


def parse(raw: Payload) -> Snapshot:
    """
    Parse a raw payload into a Snapshot.

    Args:
        raw: JSON document as bytes or text

    Returns:
        A new Snapshot; the ``default`` scope is synthesized if missing

    Raises:
        ParseError: If the payload is not valid JSON or has the wrong shape
    """
    if not isinstance(raw, (bytes, bytearray, str)):
        raise ParseError(f"Flag payload must be bytes or str, got {type(raw).__name__}")

    size = len(raw)
    try:
        document = FeatureMapDocument.model_validate_json(raw)
    except ValidationError as e:
        raise ParseError(f"Invalid flag payload ({size} bytes): {e}", payload_size=size) from e

    root = document.dcdr
    features: Dict[str, Any] = dict(root.features or {})
    features.setdefault(DEFAULT_SCOPE, {})
    version = root.info.current_sha if root.info else ""

    snapshot = Snapshot(version=version, root=scope_node(features), digest=_payload_digest(raw))
    logger.debug(f"Parsed flag snapshot {version or '<unversioned>'} with {len(features)} scopes")
    return snapshot


def empty_default_snapshot() -> Snapshot:
    """Minimal valid Snapshot holding only an empty ``default`` scope."""
    return Snapshot(version="", root=scope_node({DEFAULT_SCOPE: {}}))


def scoped_document(version: str, features: Mapping[str, FlagValue]) -> Dict[str, Any]:
    """
    Export shape for a resolved view.

    Same layout as the input format, with ``features`` holding one flattened
    scope instead of the scope tree.
    """
    info: Dict[str, Any] = {}
    if version:
        info["current_sha"] = version
    flat = {name: value.to_raw() for name, value in features.items()}
    return {ROOT_KEY: {"info": info, "features": flat}}


def dump_scoped(version: str, features: Mapping[str, FlagValue]) -> str:
    return json.dumps(scoped_document(version, features), indent=2, ensure_ascii=False)

