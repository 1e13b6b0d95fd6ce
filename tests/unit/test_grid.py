"""
表格单元测试

每个模块完成后必须运行：pytest tests/unit/test_grid.py -v
"""

import logging
import random

import pytest

from tablify.core import Grid, GridState
from tablify.interfaces import (
    DefinitionError,
    DuplicateIdError,
    InvalidPositionError,
    UseAfterDestroyError,
)
from tablify.models import After, RowType


def _ids(entities):
    return [e.entity_id for e in entities]


def _assert_consistent(grid: Grid):
    assert grid.validate_consistency() == []


class TestAddRow:
    """增加行测试"""

    def test_default_content_precedence(self, make_grid):
        """行内显式内容 > 列模板 > 表格级默认值"""
        grid = make_grid()
        grid.add_column({"columnId": "a"})
        grid.add_column({"columnId": "b", "defaultBodyContent": "-"})
        grid.add_row({"rowId": "r1", "content": {"a": "x"}})
        grid.add_row({"rowId": "r2", "content": {"a": "y", "b": "z"}})
        assert grid.get_cell("r1", "b").content == "-"
        assert grid.get_cell("r2", "b").content == "z"
        assert grid.get_cell("r1", "a").content == "x"
        _assert_consistent(grid)

    def test_global_default(self, make_grid):
        """未定义模板时，标题行显示列ID，表体为空"""
        grid = make_grid()
        grid.add_column("a")
        grid.add_row("t", RowType.TITLE)
        grid.add_row("r")
        assert grid.get_cell("t", "a").content == "a"
        assert grid.get_cell("r", "a").content == ""

    def test_broadcast_content(self, make_grid):
        grid = make_grid()
        grid.add_column("a")
        grid.add_column("b")
        row = grid.add_row({"rowId": "r", "content": "same"})
        assert [c.content for c in row.get_cells()] == ["same", "same"]
        assert row.get_cell("a") is not row.get_cell("b")

    def test_auto_id(self, grid):
        row = grid.add_row()
        assert row.entity_id == "jsr1"
        assert grid.add_row().entity_id == "jsr2"

    def test_auto_id_skips_user_ids(self, grid):
        grid.add_row("jsr1")
        assert grid.add_row().entity_id == "jsr2"

    def test_removed_id_not_reissued(self, grid):
        row = grid.add_row()
        grid.remove_row(row)
        assert grid.add_row().entity_id != row.entity_id

    def test_duplicate(self, sample_grid):
        before = sample_grid.serialize()
        with pytest.raises(DuplicateIdError):
            sample_grid.add_row("r1")
        assert sample_grid.serialize() == before

    def test_rowtype_from_definition(self, grid):
        row = grid.add_row({"rowId": "f", "rowType": "footer"})
        assert row.row_type is RowType.FOOTER

    def test_unknown_field(self, grid):
        with pytest.raises(DefinitionError):
            grid.add_row({"rowId": "r", "colour": "red"})

    def test_unknown_kind(self, grid):
        with pytest.raises(DefinitionError):
            grid.add_row("r", "header")

    def test_generate_missing_columns(self, make_grid):
        """缺失列先生成，已有行使用默认内容"""
        grid = make_grid()
        grid.add_column("a")
        grid.add_row("r1")
        row = grid.add_row({"rowId": "r2", "content": {"a": "1", "n": "2"}, "generateMissingColumns": True})
        assert _ids(grid.get_columns()) == ["a", "n"]
        assert row.get_cell("n").content == "2"
        assert grid.get_cell("r1", "n").content == ""
        _assert_consistent(grid)

    def test_missing_columns_ignored(self, make_grid):
        grid = make_grid()
        grid.add_column("a")
        grid.add_row({"rowId": "r", "content": {"a": "1", "n": "2"}})
        assert grid.get_column_count() == 1

    def test_invalid_cell_commits_nothing(self, make_grid):
        """单元格定义无效时不生成任何列或行"""
        grid = make_grid()
        grid.add_column("a")
        with pytest.raises(DefinitionError):
            grid.add_row({"rowId": "r", "content": {"a": 42, "n": "2"}, "generateMissingColumns": True})
        assert grid.get_column_count() == 1
        assert grid.get_row_count() == 0

    def test_invalid_position_commits_nothing(self, sample_grid):
        with pytest.raises(InvalidPositionError):
            sample_grid.add_row("x", position=After("zz"))
        assert sample_grid.get_row("x") is None


class TestAddColumn:
    """增加列测试"""

    def test_cell_per_row(self, sample_grid):
        """新列为每一行增加恰好一个单元格"""
        column = sample_grid.add_column({"columnId": "c", "content": {"r1": "special"}})
        assert len(column.get_cells()) == sample_grid.get_row_count()
        assert sample_grid.get_cell("r1", "c").content == "special"
        assert sample_grid.get_cell("t1", "c").content == "c"
        _assert_consistent(sample_grid)

    def test_generate_missing_rows_disabled(self, make_grid):
        """未开启时不生成缺失行，列数恰好加一"""
        grid = make_grid()
        grid.add_column("a")
        grid.add_column({"columnId": "b", "defaultBodyContent": "-"})
        grid.add_row({"rowId": "r1", "content": {"a": "x"}})
        grid.add_row({"rowId": "r2", "content": {"a": "y", "b": "z"}})

        count = grid.get_column_count()
        grid.add_column({"columnId": "c3", "content": {"r1": "special", "r9": "?"}, "generateMissingRows": False})
        assert grid.get_row("r9") is None
        assert grid.get_column_count() == count + 1
        assert grid.get_cell("r1", "c3").content == "special"

    def test_generate_missing_rows(self, sample_grid):
        column = sample_grid.add_column({"columnId": "c", "content": {"r9": "new"}, "generateMissingRows": True})
        row = sample_grid.get_row("r9")
        assert row.row_type is RowType.BODY
        assert column.get_cell("r9").content == "new"
        assert row.get_cell("a").content == ""
        assert sample_grid.get_rows(RowType.FOOTER)[0].entity_id == "f1"
        _assert_consistent(sample_grid)

    def test_templates(self, grid):
        column = grid.add_column({
            "columnId": "a",
            "defaultTitleContent": "T",
            "defaultBodyContent": {"content": "B", "type": "string"},
            "default_footer_content": "F",
        })
        grid.add_row("t", RowType.TITLE)
        grid.add_row("b")
        grid.add_row("f", RowType.FOOTER)
        assert [c.content for c in column.get_cells()] == ["T", "B", "F"]

    def test_position(self, sample_grid):
        sample_grid.add_column("c", "first")
        sample_grid.add_column("d", After("a"))
        assert _ids(sample_grid.get_columns()) == ["c", "a", "d", "b"]

    def test_duplicate(self, sample_grid):
        with pytest.raises(DuplicateIdError):
            sample_grid.add_column("a")
        assert sample_grid.get_column_count() == 2

    def test_invalid_content(self, grid):
        with pytest.raises(DefinitionError):
            grid.add_column({"columnId": "a", "content": "x"})


class TestSections:
    """表头/表体/表尾区段测试"""

    def test_rows_grouped_by_section(self, sample_grid):
        sample_grid.add_row("t2", RowType.TITLE)
        sample_grid.add_row("f2", RowType.FOOTER, "first")
        sample_grid.add_row("r0", RowType.BODY, "first")
        assert _ids(sample_grid.get_rows()) == ["t1", "t2", "r0", "r1", "r2", "r3", "f2", "f1"]
        assert _ids(sample_grid.get_rows(RowType.TITLE)) == ["t1", "t2"]
        assert sample_grid.get_row_count(RowType.BODY) == 4
        _assert_consistent(sample_grid)

    def test_cross_section_reference(self, sample_grid):
        with pytest.raises(InvalidPositionError):
            sample_grid.add_row("x", RowType.BODY, After("t1"))

    def test_move_within_section(self, sample_grid):
        sample_grid.move_row("r1", "bottom")
        assert _ids(sample_grid.get_rows()) == ["t1", "r2", "r3", "r1", "f1"]

    def test_move_across_section(self, sample_grid):
        with pytest.raises(InvalidPositionError):
            sample_grid.move_row("r1", After("f1"))
        assert _ids(sample_grid.get_rows()) == ["t1", "r1", "r2", "r3", "f1"]

    def test_order_rows_per_section(self, sample_grid):
        sample_grid.order_rows(["r3", "f1", "zz", "r2"])
        assert _ids(sample_grid.get_rows()) == ["t1", "r3", "r2", "r1", "f1"]

    def test_sort_rows_per_section(self, sample_grid):
        sample_grid.sort_rows(lambda x, y: x.entity_id > y.entity_id)
        assert _ids(sample_grid.get_rows()) == ["t1", "r3", "r2", "r1", "f1"]


class TestRemoveAndMove:
    """删除与移动测试"""

    def test_move_then_remove_column(self, sample_grid):
        """移动行到末尾后删除列：无悬挂单元格，其他行顺序不变"""
        sample_grid.move_row("r1", "bottom")
        order = _ids(sample_grid.get_rows())
        count = sample_grid.get_column_count()
        assert sample_grid.remove_column("a") is True
        assert sample_grid.get_row("r1").get_cell("a") is None
        assert sample_grid.get_column_count() == count - 1
        assert _ids(sample_grid.get_rows()) == order
        _assert_consistent(sample_grid)

    def test_remove_row(self, sample_grid):
        row = sample_grid.get_row("r2")
        cells = row.get_cells()
        assert sample_grid.remove_row("r2") is True
        assert sample_grid.get_row("r2") is None
        assert all(cell.row is None and cell.column is None for cell in cells)
        assert len(sample_grid.get_column_cells("a")) == 4
        _assert_consistent(sample_grid)

    def test_remove_missing(self, sample_grid):
        assert sample_grid.remove_row("zz") is False
        assert sample_grid.remove_column(99) is False

    def test_remove_by_position(self, sample_grid):
        assert sample_grid.remove_row(0) is True
        assert sample_grid.get_row_count(RowType.TITLE) == 0

    def test_removed_entity_destroyed(self, sample_grid):
        row = sample_grid.get_row("r1")
        row.remove()
        with pytest.raises(UseAfterDestroyError):
            row.get_cells()

    def test_move_column(self, sample_grid):
        assert sample_grid.move_column("a", "right") is True
        assert _ids(sample_grid.get_columns()) == ["b", "a"]
        assert sample_grid.move_column("zz", "first") is False

    def test_order_and_sort_columns(self, sample_grid):
        sample_grid.add_column("c")
        sample_grid.order_columns(["c"])
        assert _ids(sample_grid.get_columns()) == ["c", "a", "b"]
        sample_grid.sort_columns(key=lambda c: c.entity_id)
        assert _ids(sample_grid.get_columns()) == ["a", "b", "c"]


class TestLookup:
    """查询测试"""

    def test_get_cell_refs(self, sample_grid):
        row = sample_grid.get_row("r1")
        column = sample_grid.get_column("a")
        assert sample_grid.get_cell(row, column) is sample_grid.get_cell(1, 0)
        assert sample_grid.get_cell("r1", "zz") is None
        assert sample_grid.get_cell(99, "a") is None

    def test_indexes(self, sample_grid):
        assert sample_grid.get_row_index("r2") == 2
        assert sample_grid.get_column_index("b") == 1
        assert sample_grid.get_row_index("zz") is None

    def test_neighbours(self, sample_grid):
        r1 = sample_grid.get_row("r1")
        assert r1.prev.entity_id == "t1"
        assert r1.next.entity_id == "r2"

    def test_entity_equality(self, sample_grid):
        copy = sample_grid.copy()
        assert sample_grid.get_row("r1") == sample_grid.get_row(1)
        assert sample_grid.get_row("r1") != copy.get_row("r1")

    def test_destroyed_entity_equality(self, make_grid):
        """已销毁的行只等于自身，不会与其他表格中同ID的行相等"""
        old = make_grid()
        stale = old.add_row("r")
        old.destroy()
        fresh = make_grid()
        row = fresh.add_row("r")
        assert stale == stale
        assert stale != row
        assert row == fresh.get_row("r")
        assert len({stale, row}) == 2

    def test_set_cell(self, sample_grid):
        cell = sample_grid.set_cell("r1", "a", "new")
        assert sample_grid.get_cell("r1", "a") is cell
        assert cell.row.entity_id == "r1"
        assert sample_grid.set_cell("zz", "a", "x") is None


class TestSerialize:
    """序列化测试"""

    def test_shape(self, sample_grid):
        data = sample_grid.serialize()
        assert set(data) == {"columns", "rows", "titleRowCount", "footerRowCount"}
        assert data["titleRowCount"] == 1
        assert data["footerRowCount"] == 1
        assert data["columns"][1] == {
            "columnId": "b",
            "defaultBodyContent": {"content": "-", "type": "string"},
            "visible": True,
        }
        assert data["rows"][1] == {
            "rowId": "r1",
            "rowType": "body",
            "content": {
                "a": {"content": "x", "type": "string"},
                "b": {"content": "-", "type": "string"},
            },
            "visible": True,
        }

    def test_without_content(self, sample_grid):
        data = sample_grid.serialize(False)
        assert "content" not in data["rows"][0]
        assert "defaultBodyContent" not in data["columns"][1]

    def test_round_trip(self, sample_grid, make_grid):
        """描述符往返结构相等"""
        sample_grid.add_row({"rowId": "n", "content": {"a": make_grid({
            "columns": [{"columnId": "k"}],
            "rows": [{"rowId": "v", "content": {"k": "deep"}}],
        })}})
        sample_grid.hide_column("b")
        data = sample_grid.serialize(True)
        restored = make_grid(data)
        assert restored.serialize(True) == data
        assert restored.get_cell("n", "a").content.get_cell("v", "k").content == "deep"

    def test_round_trip_without_content(self, sample_grid, make_grid):
        data = sample_grid.serialize(False)
        assert make_grid(data).serialize(False) == data

    def test_row_order_after_moves(self, sample_grid, make_grid):
        sample_grid.move_row("r3", "first")
        sample_grid.move_column("b", "first")
        restored = make_grid(sample_grid.serialize())
        assert _ids(restored.get_rows()) == ["t1", "r3", "r1", "r2", "f1"]
        assert _ids(restored.get_columns()) == ["b", "a"]

    def test_opaque_round_trip(self, make_grid, renderer, html):
        grid = make_grid(renderer=renderer)
        grid.add_column("a")
        grid.add_row({"rowId": "r", "content": {"a": html("<b>x</b>")}})
        restored = make_grid(grid.serialize(), renderer=renderer)
        assert restored.get_cell("r", "a").content.snapshot() == "<b>x</b>"
        assert ("restore_handle", "<b>x</b>") in renderer.calls

    def test_from_descriptor_counts_override_rowtype(self, config):
        grid = Grid.from_descriptor(
            {
                "columns": [{"columnId": "a"}],
                "rows": [{"rowId": "x", "rowType": "body"}, {"rowId": "y", "rowType": "title"}],
                "titleRowCount": 1,
            },
            config=config,
        )
        assert grid.get_row("x").row_type is RowType.TITLE
        assert grid.get_row("y").row_type is RowType.TITLE
        assert _ids(grid.get_rows()) == ["x", "y"]

    def test_from_descriptor_plain_templates(self, make_grid):
        """描述中的列默认内容可直接写字符串"""
        grid = make_grid(
            {
                "columns": [{"columnId": "a"}, {"columnId": "b", "defaultBodyContent": "-"}],
                "rows": [
                    {"rowId": "r1", "content": {"a": "x"}},
                    {"rowId": "r2", "content": {"a": "y", "b": "z"}},
                ],
            }
        )
        assert grid.get_column("b").default_body_content.content == "-"
        assert grid.get_cell("r1", "b").content == "-"
        assert grid.get_cell("r2", "b").content == "z"
        grid.add_row("r3")
        assert grid.get_cell("r3", "b").content == "-"
        assert grid.serialize()["columns"][1]["defaultBodyContent"] == {"content": "-", "type": "string"}

    def test_invalid_descriptor(self, make_grid):
        with pytest.raises(DefinitionError):
            make_grid({"rows": [], "titleRowCount": 1})
        with pytest.raises(DefinitionError):
            make_grid(["not", "a", "descriptor"])

    def test_duplicate_in_descriptor(self, make_grid):
        with pytest.raises(DuplicateIdError):
            make_grid({"columns": [{"columnId": "a"}, {"columnId": "a"}]})


class TestCopy:
    """深拷贝测试"""

    def test_copy_independent(self, sample_grid):
        copy = sample_grid.copy()
        assert copy.serialize() == sample_grid.serialize()
        assert copy.grid_id != sample_grid.grid_id
        copy.add_row("extra")
        copy.get_cell("r1", "a").content = "changed"
        assert sample_grid.get_row("extra") is None
        assert sample_grid.get_cell("r1", "a").content == "x"

    def test_copy_nested_and_opaque(self, make_grid, html):
        handle = html("<i>y</i>")
        grid = make_grid()
        grid.add_column("a")
        grid.add_column("b")
        nested = make_grid({"columns": [{"columnId": "k"}]})
        grid.add_row({"rowId": "r", "content": {"a": nested, "b": handle}})
        copy = grid.copy()
        assert copy.get_cell("r", "a").content is not nested
        assert copy.get_cell("r", "a").content.parent_cell is copy.get_cell("r", "a")
        assert copy.get_cell("r", "b").content is handle

    def test_copy_preserves_templates_and_visibility(self, sample_grid):
        sample_grid.hide_row("r2")
        copy = sample_grid.copy()
        assert copy.get_column("b").default_body_content.content == "-"
        assert copy.get_row("r2").visible is False


class TestLifecycle:
    """生命周期测试"""

    def test_state(self, sample_grid):
        assert sample_grid.state is GridState.READY

    def test_use_after_destroy(self, sample_grid):
        row = sample_grid.get_row("r1")
        sample_grid.destroy()
        assert sample_grid.state is GridState.DESTROYED
        with pytest.raises(UseAfterDestroyError):
            sample_grid.add_row()
        with pytest.raises(UseAfterDestroyError):
            sample_grid.get_row("r1")
        with pytest.raises(UseAfterDestroyError):
            sample_grid.serialize()
        with pytest.raises(UseAfterDestroyError):
            sample_grid.destroy()
        with pytest.raises(UseAfterDestroyError):
            row.get_cell("a")
        assert row.destroyed

    def test_destroy_keeps_nested(self, make_grid):
        """外层表格销毁不影响嵌套表格"""
        nested = make_grid()
        grid = make_grid()
        grid.add_column("a")
        grid.add_row({"rowId": "r", "content": {"a": nested}})
        grid.destroy()
        assert not nested.destroyed

    def test_destroy_nested_clears_parent_cell(self, make_grid):
        """嵌套表格销毁后外层表格仍可序列化与复制"""
        nested = make_grid({"columns": [{"columnId": "k"}]})
        grid = make_grid()
        grid.add_column("a")
        grid.add_row({"rowId": "r", "content": {"a": nested}})
        cell = grid.get_cell("r", "a")
        nested.destroy()
        assert cell.content == ""
        assert nested.parent_cell is None
        assert grid.serialize()["rows"][0]["content"]["a"] == {"content": "", "type": "string"}
        assert grid.copy().get_cell("r", "a").content == ""
        _assert_consistent(grid)

    def test_destroy_tears_down_handles(self, make_grid, renderer):
        grid = make_grid(renderer=renderer)
        grid.add_column("a")
        grid.add_row("r")
        grid.destroy()
        # 行、列、单元格各一个句柄
        assert renderer.count("teardown") == 3


class TestRendererAndObservers:
    """渲染层与观察者测试"""

    def test_materialize_once(self, make_grid, renderer):
        grid = make_grid(renderer=renderer)
        grid.add_column("a")
        grid.add_row("r")
        grid.add_column("b")
        # 列a、行r、单元格(r,a)、列b、单元格(r,b)
        assert renderer.count("materialize") == 5
        assert all(isinstance(c.render_handle, str) for c in grid.get_row("r").get_cells())

    def test_events(self, grid, recorder):
        grid.add_column("a")
        grid.add_row("r1")
        grid.add_row("r2")
        grid.move_row("r2", "first")
        grid.remove_row("r1")
        grid.remove_column("a")
        assert recorder.events == [
            ("on_column_added", "a", 0),
            ("on_row_added", "r1", 0),
            ("on_row_added", "r2", 1),
            ("on_reordered", "r2", 0),
            ("on_row_removed", "r1", 1),
            ("on_column_removed", "a", 0),
        ]

    def test_reorder_events(self, grid, recorder):
        for row_id in ("a", "b", "c"):
            grid.add_row(row_id)
        recorder.events.clear()
        grid.order_rows(["b", "a"])
        assert recorder.events == [("on_reordered", "b", 0), ("on_reordered", "a", 1)]

    def test_unsubscribe(self, grid, recorder):
        assert grid.unsubscribe(recorder) is True
        grid.add_row()
        assert recorder.events == []
        assert grid.unsubscribe(recorder) is False

    def test_failing_observer(self, grid, caplog):
        """观察者异常只记录日志，不影响操作"""

        class Broken:
            def on_row_added(self, row, position):
                raise RuntimeError("boom")

        grid.subscribe(Broken())
        with caplog.at_level(logging.ERROR):
            row = grid.add_row("r")
        assert grid.get_row("r") is row
        assert "on_row_added" in caplog.text

    def test_failing_renderer(self, make_grid, renderer, caplog):
        def explode(entity):
            raise RuntimeError("boom")

        renderer.materialize = explode
        grid = make_grid(renderer=renderer)
        with caplog.at_level(logging.ERROR):
            grid.add_column("a")
        assert grid.get_column("a").render_handle is None
        assert "materialize" in caplog.text

    def test_visibility(self, make_grid, renderer):
        grid = make_grid(renderer=renderer)
        grid.add_column("a")
        done = []
        assert grid.hide_column("a", lambda: done.append("hidden")) is True
        assert grid.get_column("a").visible is False
        assert done == []
        renderer.finish()
        assert done == ["hidden"]
        assert grid.get_column("a").show() is True
        assert grid.show_row("zz") is False

    def test_hidden_on_creation(self, make_grid, renderer):
        grid = make_grid(renderer=renderer)
        grid.add_row({"rowId": "r", "visible": False})
        assert ("set_visible", (grid.get_row("r").render_handle, False)) in renderer.calls


class TestInvariants:
    """全交叉不变量测试"""

    def test_random_operations(self, make_grid):
        rng = random.Random(7)
        grid = make_grid()
        for _ in range(300):
            op = rng.choice(["add_row", "add_column", "remove_row", "remove_column", "move_row", "sort"])
            rows, columns = grid.get_rows(), grid.get_columns()
            if op == "add_row":
                grid.add_row(None, rng.choice(list(RowType)), rng.choice([None, "first", 0, -1]))
            elif op == "add_column":
                grid.add_column(None, rng.choice([None, "first", 1, -2]))
            elif op == "remove_row" and rows:
                grid.remove_row(rng.choice(rows))
            elif op == "remove_column" and columns:
                grid.remove_column(rng.choice(columns))
            elif op == "move_row" and rows:
                grid.move_row(rng.choice(rows), rng.choice(["up", "down", "first", "last", 1]))
            elif op == "sort":
                grid.sort_rows(key=lambda r: r.entity_id)
            _assert_consistent(grid)
