"""SQLite-backed hierarchical document store."""

from __future__ import annotations

from contextlib import contextmanager
import json
from pathlib import Path
import sqlite3
from typing import Any, Iterator, Mapping

from korsync.errors import StoreOperationError
from korsync.store.base import CONTAINER, NODE, Container, NodeRef, PropertyMatch, StoredNode
from korsync.store.schema import apply_runtime_pragmas, ensure_schema


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise StoreOperationError(operation, f"SQLite {operation} failed: {exc}") from exc


def _dump_properties(properties: Mapping[str, Any] | None) -> str:
    return json.dumps(dict(properties or {}), ensure_ascii=False)


def _row_to_node(row: sqlite3.Row) -> StoredNode:
    parent_id = row["parent_id"]
    parent = NodeRef(CONTAINER, row["container_id"]) if parent_id is None else NodeRef(NODE, parent_id)
    return StoredNode(
        id=int(row["id"]),
        container_id=int(row["container_id"]),
        parent=parent,
        position=int(row["position"]),
        text=row["text"],
        properties=json.loads(row["properties"]),
    )


class SQLiteDocumentStore:
    """Document store over two tables: containers and ordered nodes.

    Every call commits on its own; there is no cross-call transaction, so a
    sync interrupted midway leaves the mutations made so far in place.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        with _store_errors("open"):
            self._connection = sqlite3.connect(str(self._db_path))
            self._connection.row_factory = sqlite3.Row
            apply_runtime_pragmas(self._connection)
            ensure_schema(self._connection)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "SQLiteDocumentStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    async def get_container(self, name: str) -> Container | None:
        with _store_errors("get_container"):
            row = self._connection.execute(
                "SELECT id, name, properties FROM containers WHERE name = ?",
                (name,),
            ).fetchone()
        if row is None:
            return None
        return Container(id=int(row["id"]), name=row["name"], properties=json.loads(row["properties"]))

    async def create_container(self, name: str, properties: Mapping[str, Any] | None = None) -> Container:
        with _store_errors("create_container"), self._connection:
            cursor = self._connection.execute(
                "INSERT INTO containers(name, properties) VALUES(?, ?)",
                (name, _dump_properties(properties)),
            )
        return Container(id=int(cursor.lastrowid), name=name, properties=dict(properties or {}))

    async def get_children(self, parent: NodeRef) -> list[StoredNode]:
        with _store_errors("get_children"):
            if parent.kind == CONTAINER:
                rows = self._connection.execute(
                    """
                    SELECT id, container_id, parent_id, position, text, properties
                    FROM nodes
                    WHERE container_id = ? AND parent_id IS NULL
                    ORDER BY position ASC, id ASC
                    """,
                    (parent.id,),
                ).fetchall()
            else:
                rows = self._connection.execute(
                    """
                    SELECT id, container_id, parent_id, position, text, properties
                    FROM nodes
                    WHERE parent_id = ?
                    ORDER BY position ASC, id ASC
                    """,
                    (parent.id,),
                ).fetchall()
        return [_row_to_node(row) for row in rows]

    async def get_node(self, node_id: int) -> StoredNode | None:
        with _store_errors("get_node"):
            row = self._connection.execute(
                """
                SELECT id, container_id, parent_id, position, text, properties
                FROM nodes
                WHERE id = ?
                """,
                (node_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_node(row)

    def _resolve_container_id(self, parent: NodeRef) -> int:
        if parent.kind == CONTAINER:
            row = self._connection.execute("SELECT id FROM containers WHERE id = ?", (parent.id,)).fetchone()
            if row is None:
                raise StoreOperationError("insert_node", f"Container {parent.id} does not exist")
            return int(row["id"])

        row = self._connection.execute("SELECT container_id FROM nodes WHERE id = ?", (parent.id,)).fetchone()
        if row is None:
            raise StoreOperationError("insert_node", f"Parent node {parent.id} does not exist")
        return int(row["container_id"])

    async def insert_node(
        self,
        parent: NodeRef,
        text: str,
        properties: Mapping[str, Any] | None = None,
    ) -> StoredNode:
        parent_id = None if parent.kind == CONTAINER else parent.id
        with _store_errors("insert_node"), self._connection:
            container_id = self._resolve_container_id(parent)
            position_row = self._connection.execute(
                """
                SELECT COALESCE(MAX(position), -1) + 1 AS next_position
                FROM nodes
                WHERE container_id = ? AND parent_id IS ?
                """,
                (container_id, parent_id),
            ).fetchone()
            position = int(position_row["next_position"])
            cursor = self._connection.execute(
                """
                INSERT INTO nodes(container_id, parent_id, position, text, properties)
                VALUES(?, ?, ?, ?, ?)
                """,
                (container_id, parent_id, position, text, _dump_properties(properties)),
            )
        return StoredNode(
            id=int(cursor.lastrowid),
            container_id=container_id,
            parent=parent,
            position=position,
            text=text,
            properties=dict(properties or {}),
        )

    async def update_node(self, node_id: int, text: str) -> None:
        with _store_errors("update_node"), self._connection:
            cursor = self._connection.execute(
                "UPDATE nodes SET text = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (text, node_id),
            )
        if cursor.rowcount == 0:
            raise StoreOperationError("update_node", f"Node {node_id} does not exist")

    async def delete_node(self, node_id: int) -> None:
        with _store_errors("delete_node"), self._connection:
            cursor = self._connection.execute("DELETE FROM nodes WHERE id = ?", (node_id,))
        if cursor.rowcount == 0:
            raise StoreOperationError("delete_node", f"Node {node_id} does not exist")

    async def query_property(self, parent: NodeRef, key: str) -> list[PropertyMatch]:
        if parent.kind == CONTAINER:
            seed = "SELECT id FROM nodes WHERE container_id = ? AND parent_id IS NULL"
        else:
            seed = "SELECT id FROM nodes WHERE parent_id = ?"
        path = '$."' + key.replace('"', '\\"') + '"'

        with _store_errors("query_property"):
            rows = self._connection.execute(
                f"""
                WITH RECURSIVE descendants(id) AS (
                    {seed}
                    UNION ALL
                    SELECT n.id FROM nodes n JOIN descendants d ON n.parent_id = d.id
                )
                SELECT n.id, n.container_id, n.parent_id, n.position, n.text, n.properties
                FROM nodes n
                JOIN descendants d ON n.id = d.id
                WHERE json_type(n.properties, ?) IS NOT NULL
                ORDER BY n.id ASC
                """,
                (parent.id, path),
            ).fetchall()

        matches: list[PropertyMatch] = []
        for row in rows:
            node = _row_to_node(row)
            matches.append(PropertyMatch(node=node, value=node.properties.get(key)))
        return matches
