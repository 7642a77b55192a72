"""State file: the Foreman objects under management and their last known attributes."""

from __future__ import annotations

import contextlib
import hashlib
import json
import logging
import os
import tempfile
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

logger = logging.getLogger(__name__)

STATE_VERSION = 1


def canonical_json(obj: Any) -> str:
    """Deterministic JSON encoding used for hashes and digests."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)


def _sha256(obj: Any) -> str:
    return hashlib.sha256(canonical_json(obj).encode("utf-8")).hexdigest()


def compute_attributes_hash(attrs: Mapping[str, Any]) -> str:
    return _sha256(attrs)


def _now() -> datetime:
    return datetime.now(UTC)


class ResourceInstance(BaseModel):
    """One managed object as recorded in the state file.

    ``attributes`` is the object's attribute bag with the Foreman id stored
    as a string under ``id``.
    """

    address: str
    resource_type: str
    name: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    attributes_hash: str = ""
    dependencies: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class State(BaseModel):
    """Everything managed on one Foreman server.

    ``host`` binds the file to that server. ``serial`` increases on every
    write; ``lineage`` is fixed when the state is first created.
    """

    version: int = STATE_VERSION
    host: str
    serial: int = 0
    lineage: str = Field(default_factory=lambda: str(uuid.uuid4()))
    resources: dict[str, ResourceInstance] = Field(default_factory=dict)
    outputs: dict[str, Any] = Field(default_factory=dict)

    def record(
        self,
        address: str,
        resource_type: str,
        name: str,
        attributes: dict[str, Any],
        dependencies: Iterable[str] = (),
    ) -> ResourceInstance:
        """Store ``attributes`` under ``address``, keeping the original creation time."""
        previous = self.resources.get(address)
        now = _now()
        inst = ResourceInstance(
            address=address,
            resource_type=resource_type,
            name=name,
            attributes=attributes,
            attributes_hash=compute_attributes_hash(attributes),
            dependencies=list(dependencies),
            created_at=previous.created_at if previous is not None else now,
            updated_at=now,
        )
        self.resources[address] = inst
        return inst

    def observe(self, address: str, attributes: dict[str, Any]) -> bool:
        """Replace the attributes read back from Foreman. True if anything changed."""
        inst = self.resources[address]
        new_hash = compute_attributes_hash(attributes)
        if new_hash == inst.attributes_hash and attributes == inst.attributes:
            return False
        inst.attributes = attributes
        inst.attributes_hash = new_hash
        inst.updated_at = _now()
        return True

    def forget(self, address: str) -> None:
        self.resources.pop(address, None)

    def save(self, path: Path) -> None:
        """Write atomically; the previous file is kept as ``<path>.backup``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with contextlib.suppress(FileNotFoundError):
            Path(f"{path}.backup").write_bytes(path.read_bytes())

        content = json.dumps(self.model_dump(mode="json"), indent=2, sort_keys=True) + "\n"
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            tmp_path.replace(path)
        finally:
            with contextlib.suppress(FileNotFoundError):
                tmp_path.unlink()
        logger.debug("State saved: serial=%d path=%s", self.serial, path)

    @classmethod
    def load(cls, path: Path) -> State:
        state = cls.model_validate_json(path.read_text(encoding="utf-8"))
        if state.version > STATE_VERSION:
            raise ValueError(
                f"{path} uses state version {state.version}; "
                f"this release reads up to version {STATE_VERSION}"
            )
        logger.debug("State loaded from %s: %d resource(s)", path, len(state.resources))
        return state

    @classmethod
    def load_or_create(cls, path: Path, host: str) -> State:
        if path.exists():
            return cls.load(path)
        logger.debug("No state at %s; starting empty for %s", path, host)
        return cls(host=host)


def compute_state_digest(state: State) -> str:
    """Digest of the state used to detect stale plans.

    Timestamps are left out, so a refresh that changes nothing keeps the digest.
    """
    return _sha256(
        {
            "version": state.version,
            "host": state.host,
            "lineage": state.lineage,
            "serial": state.serial,
            "resources": [
                {
                    "address": address,
                    "resource_type": inst.resource_type,
                    "attributes_hash": inst.attributes_hash,
                    "dependencies": sorted(inst.dependencies),
                }
                for address, inst in sorted(state.resources.items())
            ],
        }
    )
