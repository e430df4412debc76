"""Helpers for writing and reading whole node subtrees."""

from __future__ import annotations

from korsync.blocks.models import ContentNode
from korsync.store.base import INSERT, DocumentStore, NodeRef, StoredNode, StoreMutation


async def insert_tree(
    store: DocumentStore,
    parent: NodeRef,
    node: ContentNode,
    mutations: list[StoreMutation] | None = None,
) -> StoredNode:
    """Insert ``node`` and its descendants under ``parent``, depth first."""

    inserted = await store.insert_node(parent, node.text, node.properties)
    if mutations is not None:
        mutations.append(StoreMutation(INSERT, inserted.id, node.text))
    for child in node.children:
        await insert_tree(store, inserted.ref, child, mutations)
    return inserted


async def render_outline(store: DocumentStore, parent: NodeRef, depth: int = 0) -> list[str]:
    """Render a subtree as indented ``- text`` lines with property lines."""

    lines: list[str] = []
    indent = "  " * depth
    for child in await store.get_children(parent):
        text_lines = child.text.splitlines() or [""]
        lines.append(f"{indent}- {text_lines[0]}")
        lines.extend(f"{indent}  {line}" for line in text_lines[1:])
        lines.extend(f"{indent}  {key}:: {value}" for key, value in child.properties.items())
        lines.extend(await render_outline(store, child.ref, depth + 1))
    return lines
