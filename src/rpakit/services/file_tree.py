"""Render archive paths as a directory tree."""

from __future__ import annotations

from collections.abc import Iterable

FileTree = dict[str, "FileTree"]


def build_file_tree(paths: Iterable[str]) -> FileTree:
    """Nest ``/``-separated paths; files map to an empty dict."""
    root: FileTree = {}
    for path in paths:
        node = root
        for segment in (s.strip() for s in path.split("/")):
            if segment:
                node = node.setdefault(segment, {})
    return root


def _is_dir(node: FileTree) -> bool:
    return bool(node)


def render_file_tree(tree: FileTree, root_label: str = "/") -> list[str]:
    """Render *tree* with box-drawing connectors, directories first."""
    lines = [root_label]

    def walk(node: FileTree, indent: str) -> None:
        names = sorted(node, key=lambda n: (not _is_dir(node[n]), n))
        for i, name in enumerate(names):
            last = i == len(names) - 1
            child = node[name]
            label = f"{name}/" if _is_dir(child) else name
            lines.append(f"{indent}{'└── ' if last else '├── '}{label}")
            if _is_dir(child):
                walk(child, indent + ("    " if last else "│   "))

    walk(tree, "")
    return lines
