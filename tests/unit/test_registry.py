"""
表格登记表单元测试

每个模块完成后必须运行：pytest tests/unit/test_registry.py -v
"""

import logging

import pytest

from tablify.core import GridRegistry
from tablify.interfaces import DuplicateIdError


@pytest.fixture
def registry() -> GridRegistry:
    return GridRegistry()


class TestGridRegistry:
    """登记表测试"""

    def test_register_on_construction(self, make_grid, registry):
        grid = make_grid(registry=registry)
        assert grid in registry
        assert registry.get(grid.grid_id) is grid
        assert len(registry) == 1

    def test_unregister_on_destroy(self, make_grid, registry):
        grid = make_grid(registry=registry)
        grid.destroy()
        assert grid not in registry
        assert registry.get(grid.grid_id) is None

    def test_hooks(self, make_grid, registry):
        events = []
        registry.on_registered = lambda g: events.append(("registered", g.grid_id))
        registry.on_unregistered = lambda g: events.append(("unregistered", g.grid_id))
        grid = make_grid(grid_id="main", registry=registry)
        grid.destroy()
        assert events == [("registered", "main"), ("unregistered", "main")]

    def test_duplicate_grid_id(self, make_grid, registry):
        make_grid(grid_id="main", registry=registry)
        with pytest.raises(DuplicateIdError):
            make_grid(grid_id="main", registry=registry)
        assert len(registry) == 1

    def test_unregister_unknown(self, make_grid, registry, caplog):
        grid = make_grid()
        with caplog.at_level(logging.ERROR):
            assert registry.unregister(grid) is False
        assert "注销失败" in caplog.text

    def test_iteration(self, make_grid, registry):
        grids = [make_grid(registry=registry) for _ in range(3)]
        assert list(registry) == grids

    def test_copy_not_registered(self, make_grid, registry):
        grid = make_grid(registry=registry)
        grid.copy()
        assert len(registry) == 1

    def test_grid_id_from_descriptor(self, make_grid, registry):
        grid = make_grid({"gridId": "from-desc"}, registry=registry)
        assert registry.get("from-desc") is grid
