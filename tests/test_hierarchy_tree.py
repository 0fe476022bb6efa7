"""Тесты сборки дерева из плоских строк и формата снимка в кэше."""
import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from domain.entities import HierarchyRow
from domain.hierarchy import build_hierarchy_tree, dump_hierarchy, load_hierarchy
from domain.ids import new_id

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def row(name, parent=None, level=0, id=None, path=None):
    id = id or new_id()
    return HierarchyRow(
        id=id,
        name=name,
        manager_id=new_id(),
        parent_department_id=parent.id if parent else None,
        manager_name=f'Manager of {name}',
        level=level,
        path=path or [str(id)],
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def rows():
    """Engineering -> (Backend -> API, Frontend); строки в порядке level, name."""
    eng = row('Engineering')
    backend = row('Backend', eng, 1)
    frontend = row('Frontend', eng, 1)
    api = row('API', backend, 2)
    return [eng, backend, frontend, api]


class TestBuildHierarchyTree:

    def test_every_row_appears_once(self, rows):
        root = build_hierarchy_tree(rows)

        ids = [node.id for node in root.iter_nodes()]
        assert len(ids) == len(rows)
        assert set(ids) == {r.id for r in rows}

    def test_children_match_stored_parent(self, rows):
        root = build_hierarchy_tree(rows)

        for node in root.iter_nodes():
            expected = [r.id for r in rows if r.parent_department_id == node.id]
            assert [child.id for child in node.subdepartments] == expected

    def test_children_keep_row_order(self, rows):
        root = build_hierarchy_tree(rows)
        assert [c.name for c in root.subdepartments] == ['Backend', 'Frontend']

    def test_manager_name_attached(self, rows):
        root = build_hierarchy_tree(rows)
        assert root.manager_name == 'Manager of Engineering'

    def test_subtree_root_has_parent_outside_set(self):
        """Корень поддерева сам может иметь родителя, он просто не попал в выборку"""
        outside = row('Company')
        backend = row('Backend', outside, 0)
        api = row('API', backend, 1)

        root = build_hierarchy_tree([backend, api])

        assert root.id == backend.id
        assert root.parent_department_id == outside.id
        assert [c.id for c in root.subdepartments] == [api.id]

    def test_duplicate_rows_ignored(self, rows):
        root = build_hierarchy_tree([*rows, rows[1]])
        assert len(list(root.iter_nodes())) == len(rows)

    def test_empty(self):
        assert build_hierarchy_tree([]) is None


class TestCachePayload:

    def test_camel_case_field_names(self, rows):
        payload = json.loads(dump_hierarchy(build_hierarchy_tree(rows)))

        assert set(payload) == {
            'id', 'name', 'managerId', 'managerName', 'parentDepartmentId',
            'subdepartments', 'createdAt', 'updatedAt',
        }
        assert payload['parentDepartmentId'] is None
        assert payload['subdepartments'][0]['name'] == 'Backend'
        assert payload['subdepartments'][0]['subdepartments'][0]['name'] == 'API'

    def test_load_restores_tree(self, rows):
        root = build_hierarchy_tree(rows)
        restored = load_hierarchy(dump_hierarchy(root))
        assert restored == root

    @pytest.mark.parametrize('raw', ['not json', '{"id": "x"}', '[]'])
    def test_load_rejects_foreign_shape(self, raw):
        with pytest.raises(ValidationError):
            load_hierarchy(raw)
