"""Shared contract for hierarchical document stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, runtime_checkable

CONTAINER = "container"
NODE = "node"

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"


@dataclass(frozen=True, slots=True)
class NodeRef:
    """Typed reference to a container or a node."""

    kind: str
    id: int


@dataclass(slots=True)
class Container:
    """A named top-level grouping of nodes (a page)."""

    id: int
    name: str
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def ref(self) -> NodeRef:
        return NodeRef(CONTAINER, self.id)


@dataclass(slots=True)
class StoredNode:
    """A persisted node as read back from the store."""

    id: int
    container_id: int
    parent: NodeRef
    position: int
    text: str
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def ref(self) -> NodeRef:
        return NodeRef(NODE, self.id)


@dataclass(slots=True)
class PropertyMatch:
    node: StoredNode
    value: Any


@dataclass(frozen=True, slots=True)
class StoreMutation:
    """One applied insert, update or delete."""

    action: str
    node_id: int
    text: str | None = None


@runtime_checkable
class DocumentStore(Protocol):
    """Async hierarchical store of containers and ordered node trees."""

    async def get_container(self, name: str) -> Container | None:
        """Return the container with this name (case-insensitive)."""

    async def create_container(self, name: str, properties: Mapping[str, Any] | None = None) -> Container:
        """Create a new empty container."""

    async def get_children(self, parent: NodeRef) -> list[StoredNode]:
        """Return the direct children of a container or node, in order."""

    async def get_node(self, node_id: int) -> StoredNode | None:
        """Return one node, or None when it no longer exists."""

    async def insert_node(
        self,
        parent: NodeRef,
        text: str,
        properties: Mapping[str, Any] | None = None,
    ) -> StoredNode:
        """Append a node as the last child of ``parent``."""

    async def update_node(self, node_id: int, text: str) -> None:
        """Replace the text of a node."""

    async def delete_node(self, node_id: int) -> None:
        """Delete a node together with its subtree."""

    async def query_property(self, parent: NodeRef, key: str) -> list[PropertyMatch]:
        """Return all descendants of ``parent`` carrying property ``key``."""
