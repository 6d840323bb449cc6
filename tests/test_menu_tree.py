# tests/test_menu_tree.py

"""
Tests for assembling the menu tree from flat rows.
"""

import logging
from types import SimpleNamespace

import pytest

from backoffice.core.exceptions import IntegrityFault
from backoffice.services.menu_tree import build_menu_tree, walk_tree, with_ancestors


def menu(id, parent_id=None, sort_order=0):
    return SimpleNamespace(
        id=id, parent_id=parent_id, sort_order=sort_order,
        name=f"menu-{id}", display_name=f"Menu {id}", path=None, icon=None, is_active=True,
    )


def flatten(roots):
    return [node.menu.id for _, node in walk_tree(roots)]


def test_empty_input():
    assert build_menu_tree([]) == []


def test_every_node_appears_exactly_once():
    menus = [menu(1), menu(2, 1), menu(3, 1), menu(4, 2), menu(5), menu(6, 5)]
    roots = build_menu_tree(menus)
    assert sorted(flatten(roots)) == [1, 2, 3, 4, 5, 6]
    assert len(flatten(roots)) == len(menus)


def test_siblings_ordered_by_sort_order_then_input_order():
    menus = [menu(1), menu(2, 1, sort_order=20), menu(3, 1, sort_order=10), menu(4, 1, sort_order=10)]
    roots = build_menu_tree(menus)
    assert [child.menu.id for child in roots[0].children] == [3, 4, 2]


def test_roots_ordered_by_sort_order():
    roots = build_menu_tree([menu(1, sort_order=5), menu(2, sort_order=1)])
    assert [node.menu.id for node in roots] == [2, 1]


def test_orphan_becomes_root_and_is_logged(caplog):
    menus = [menu(1), menu(2, parent_id=99)]
    with caplog.at_level(logging.WARNING, logger="backoffice"):
        first = build_menu_tree(menus)
        second = build_menu_tree(menus)
    assert [node.menu.id for node in first] == [1, 2]
    assert [node.menu.id for node in second] == [1, 2]
    assert "missing parent 99" in caplog.text


def test_self_parent_becomes_root():
    roots = build_menu_tree([menu(1, parent_id=1)])
    assert [node.menu.id for node in roots] == [1]
    assert roots[0].children == []


def test_cycle_does_not_loop_or_lose_nodes():
    menus = [menu(1, parent_id=2), menu(2, parent_id=1), menu(3)]
    roots = build_menu_tree(menus)
    assert sorted(flatten(roots)) == [1, 2, 3]


def test_cycle_keeps_its_other_children_in_place(caplog):
    menus = [menu(1, parent_id=2), menu(2, parent_id=1), menu(3, parent_id=1, sort_order=-1)]
    with caplog.at_level(logging.WARNING, logger="backoffice"):
        roots = build_menu_tree(menus)

    assert [root.menu.id for root in roots] == [1]
    assert [child.menu.id for child in roots[0].children] == [3, 2]
    assert "Menu 1 is part of a parent cycle" in caplog.text
    assert "Menu 3 is part" not in caplog.text


def test_cycle_with_deeper_subtree():
    menus = [menu(1, parent_id=3), menu(2, parent_id=1), menu(3, parent_id=2), menu(4, parent_id=2), menu(5, parent_id=4)]
    roots = build_menu_tree(menus)

    assert len(roots) == 1
    assert sorted(flatten(roots)) == [1, 2, 3, 4, 5]
    by_id = {node.menu.id: node for _, node in walk_tree(roots)}
    assert [child.menu.id for child in by_id[4].children] == [5]
    assert 4 in [child.menu.id for child in by_id[2].children]


def test_duplicate_ids_are_an_integrity_fault():
    with pytest.raises(IntegrityFault):
        build_menu_tree([menu(1), menu(1)])


def test_to_dict_nests_children():
    tree = build_menu_tree([menu(1), menu(2, 1)])
    data = tree[0].to_dict()
    assert data["id"] == 1
    assert [child["id"] for child in data["children"]] == [2]


def test_with_ancestors_adds_grouping_parents():
    all_menus = [menu(1), menu(2, 1), menu(3, 2), menu(4)]
    selected = [all_menus[2]]
    assert sorted(m.id for m in with_ancestors(selected, all_menus)) == [1, 2, 3]
