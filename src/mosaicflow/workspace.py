"""Workspace store: the node/edge graph of a canvas in workspace.json.

Every mutating operation is load -> modify -> save on the whole document.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from .fsutil import read_model, write_model
from .models import WorkspaceDocument, WorkspaceEdge, WorkspaceNode
from .paths import CanvasPaths

logger = logging.getLogger(__name__)


class WorkspaceStore:
    """Read and mutate a canvas's workspace.json."""

    def load(self, root: Path) -> WorkspaceDocument:
        """The workspace document; an empty one if the file is absent."""
        path = CanvasPaths.from_root(root).workspace_json
        if not path.exists():
            return WorkspaceDocument()
        return read_model(path, WorkspaceDocument)

    def save(self, root: Path, doc: WorkspaceDocument) -> WorkspaceDocument:
        """Overwrite workspace.json with doc."""
        write_model(CanvasPaths.from_root(root).workspace_json, doc)
        return doc

    def update_nodes(self, root: Path, nodes: list[WorkspaceNode]) -> WorkspaceDocument:
        """Replace the whole node list. Not a merge."""
        doc = self.load(root)
        doc.nodes = list(nodes)
        return self.save(root, doc)

    def update_edges(self, root: Path, edges: list[WorkspaceEdge]) -> WorkspaceDocument:
        """Replace the whole edge list. Not a merge."""
        doc = self.load(root)
        doc.edges = list(edges)
        return self.save(root, doc)

    def add_node(self, root: Path, node: WorkspaceNode) -> WorkspaceDocument:
        doc = self.load(root)
        doc.add_node(node)
        return self.save(root, doc)

    def remove_node(self, root: Path, node_id: str) -> WorkspaceDocument:
        """Remove a node together with every edge attached to it."""
        doc = self.load(root)
        doc.remove_node(node_id)
        return self.save(root, doc)

    def add_edge(self, root: Path, edge: WorkspaceEdge) -> WorkspaceDocument:
        doc = self.load(root)
        doc.add_edge(edge)
        return self.save(root, doc)

    def remove_edge(self, root: Path, edge_id: str) -> WorkspaceDocument:
        doc = self.load(root)
        doc.remove_edge(edge_id)
        return self.save(root, doc)

    def batch_update(
        self,
        root: Path,
        nodes_to_add: Iterable[WorkspaceNode] = (),
        nodes_to_remove: Iterable[str] = (),
        edges_to_add: Iterable[WorkspaceEdge] = (),
        edges_to_remove: Iterable[str] = (),
    ) -> WorkspaceDocument:
        """Apply several mutations with one load and one save.

        Order is fixed: node removals, edge removals, node additions, edge
        additions. A node can therefore be replaced by removing and adding
        the same id in one batch, and new edges survive node removals.
        """
        doc = self.load(root)

        for node_id in nodes_to_remove:
            doc.remove_node(node_id)
        for edge_id in edges_to_remove:
            doc.remove_edge(edge_id)
        for node in nodes_to_add:
            doc.add_node(node)
        for edge in edges_to_add:
            doc.add_edge(edge)

        logger.debug(f"Batch update on {root}: {len(doc.nodes)} nodes, {len(doc.edges)} edges")
        return self.save(root, doc)
