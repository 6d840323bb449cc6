"""Menu tree assembly from the flat menu table."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Tuple

from backoffice.core.exceptions import IntegrityFault

logger = logging.getLogger("backoffice")


@dataclass(eq=False)
class MenuTreeNode:
    """A menu row plus its assembled children."""

    menu: Any
    position: int = 0
    children: List["MenuTreeNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        menu = self.menu
        return {
            "id": menu.id,
            "name": menu.name,
            "display_name": menu.display_name,
            "path": menu.path,
            "icon": menu.icon,
            "parent_id": menu.parent_id,
            "sort_order": menu.sort_order,
            "is_active": menu.is_active,
            "children": [child.to_dict() for child in self.children],
        }


def _sort_key(node: MenuTreeNode) -> Tuple[int, int]:
    return (node.menu.sort_order or 0, node.position)


def build_menu_tree(menus: Iterable[Any]) -> List[MenuTreeNode]:
    """Assemble parent/child links in one pass over an id lookup.

    Siblings are ordered by ``sort_order`` with ties kept in input order.
    A ``parent_id`` that does not resolve makes the node a root. Nodes that
    are unreachable from any root sit on or under a parent cycle in stored
    data; each cycle is broken by promoting one of its members to a root,
    and nodes hanging off the cycle stay under their parents. Every input
    node appears exactly once.

    Raises:
        IntegrityFault: if two input rows share an id.
    """
    wrappers = [MenuTreeNode(menu=menu, position=i) for i, menu in enumerate(menus)]
    wrappers.sort(key=_sort_key)

    lookup: Dict[Any, MenuTreeNode] = {}
    for node in wrappers:
        if node.menu.id in lookup:
            raise IntegrityFault(f"Duplicate menu id {node.menu.id} in menu table")
        lookup[node.menu.id] = node

    roots: List[MenuTreeNode] = []
    parents: Dict[Any, MenuTreeNode] = {}
    for node in wrappers:
        parent_id = node.menu.parent_id
        if parent_id is None:
            roots.append(node)
        elif parent_id == node.menu.id:
            logger.warning("Menu %s is its own parent; treating it as a root", node.menu.id)
            roots.append(node)
        elif parent_id in lookup:
            parent = lookup[parent_id]
            parent.children.append(node)
            parents[node.menu.id] = parent
        else:
            logger.warning(
                "Menu %s references missing parent %s; treating it as a root",
                node.menu.id, parent_id,
            )
            roots.append(node)

    visited = set()
    _mark_reachable(roots, visited)
    for node in wrappers:
        if node.menu.id in visited:
            continue
        entry = _cycle_entry(node, parents)
        logger.warning("Menu %s is part of a parent cycle; promoting it to a root", entry.menu.id)
        parent = parents.pop(entry.menu.id)
        parent.children = [child for child in parent.children if child is not entry]
        roots.append(entry)
        _mark_reachable([entry], visited)

    roots.sort(key=_sort_key)
    return roots


def _cycle_entry(node: MenuTreeNode, parents: Dict[Any, MenuTreeNode]) -> MenuTreeNode:
    """First node repeated on the parent chain from an unreachable node."""
    seen = set()
    current = node
    while current.menu.id not in seen:
        seen.add(current.menu.id)
        current = parents[current.menu.id]
    return current


def _mark_reachable(start: List[MenuTreeNode], visited: set) -> None:
    stack = list(start)
    while stack:
        node = stack.pop()
        if node.menu.id in visited:
            continue
        visited.add(node.menu.id)
        stack.extend(node.children)


def walk_tree(roots: List[MenuTreeNode], depth: int = 0) -> Iterator[Tuple[int, MenuTreeNode]]:
    """Yield ``(depth, node)`` in display order."""
    for node in roots:
        yield depth, node
        yield from walk_tree(node.children, depth + 1)


def with_ancestors(selected: Iterable[Any], all_menus: Iterable[Any]) -> List[Any]:
    """Extend a menu subset with the grouping ancestors it needs to render."""
    by_id = {menu.id: menu for menu in all_menus}
    result = {menu.id: menu for menu in selected}
    for menu in list(result.values()):
        parent_id = menu.parent_id
        seen = {menu.id}
        while parent_id is not None and parent_id in by_id and parent_id not in seen:
            seen.add(parent_id)
            parent = by_id[parent_id]
            result.setdefault(parent.id, parent)
            parent_id = parent.parent_id
    return list(result.values())
