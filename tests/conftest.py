"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(grid, recorder):
        grid.add_row("r1")
        assert recorder.events[-1][0] == "on_row_added"
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any, Callable, Generator

import pytest

from tablify.config import TablifyConfig
from tablify.core import Grid, IdGenerator, SnapshotHandle
from tablify.interfaces import GridObserver, IRenderer


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture
def config() -> TablifyConfig:
    """默认运行期配置（不读取配置文件）"""
    return TablifyConfig()


@pytest.fixture
def id_generator() -> IdGenerator:
    return IdGenerator()


# ============================================================================
# 渲染/观察 Fixtures
# ============================================================================

class RecordingRenderer(IRenderer):
    """记录所有调用的渲染器"""

    def __init__(self):
        self.calls: list[tuple[str, Any]] = []
        self.pending: list[Callable[[], None]] = []
        self._next = 0

    def materialize(self, entity: Any) -> str:
        self._next += 1
        handle = f"h{self._next}"
        self.calls.append(("materialize", entity))
        return handle

    def teardown(self, handle: Any) -> None:
        self.calls.append(("teardown", handle))

    def set_visible(self, handle: Any, visible: bool, on_complete: Callable[[], None] | None = None) -> None:
        self.calls.append(("set_visible", (handle, visible)))
        if on_complete is not None:
            # 模拟动画：由测试显式触发完成
            self.pending.append(on_complete)

    def restore_handle(self, snapshot: str) -> SnapshotHandle:
        self.calls.append(("restore_handle", snapshot))
        return SnapshotHandle(snapshot)

    def finish(self) -> None:
        while self.pending:
            self.pending.pop(0)()

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)


class RecordingObserver(GridObserver):
    """记录结构事件"""

    def __init__(self):
        self.events: list[tuple[str, str, int]] = []

    def on_row_added(self, row, position):
        self.events.append(("on_row_added", row.entity_id, position))

    def on_row_removed(self, row, position):
        self.events.append(("on_row_removed", row.entity_id, position))

    def on_column_added(self, column, position):
        self.events.append(("on_column_added", column.entity_id, position))

    def on_column_removed(self, column, position):
        self.events.append(("on_column_removed", column.entity_id, position))

    def on_reordered(self, entity, position):
        self.events.append(("on_reordered", entity.entity_id, position))


class Html:
    """测试用外部内容"""

    def __init__(self, markup: str):
        self.markup = markup

    def snapshot(self) -> str:
        return self.markup


@pytest.fixture
def html() -> type[Html]:
    """外部内容工厂：html("<b>x</b>")"""
    return Html


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def recorder() -> RecordingObserver:
    return RecordingObserver()


# ============================================================================
# 表格 Fixtures
# ============================================================================

@pytest.fixture
def make_grid(config: TablifyConfig, id_generator: IdGenerator) -> Callable[..., Grid]:
    """表格工厂（共享配置与ID生成器）"""

    def _make(descriptor: Any = None, **kwargs: Any) -> Grid:
        kwargs.setdefault("config", config)
        kwargs.setdefault("id_generator", id_generator)
        return Grid(descriptor, **kwargs)

    return _make


@pytest.fixture
def grid(make_grid, recorder: RecordingObserver) -> Grid:
    """空表格（已订阅 recorder）"""
    g = make_grid()
    g.subscribe(recorder)
    return g


@pytest.fixture
def sample_grid(make_grid) -> Grid:
    """
    示例表格：
        列 a, b（b 的表体模板为 "-"）
        表头行 t1，表体行 r1 r2 r3，表尾行 f1
    """
    g = make_grid({
        "columns": [
            {"columnId": "a"},
            {"columnId": "b", "defaultBodyContent": {"content": "-", "type": "string"}},
        ],
        "rows": [
            {"rowId": "t1"},
            {"rowId": "r1", "content": {"a": "x"}},
            {"rowId": "r2", "content": {"a": "y", "b": "z"}},
            {"rowId": "r3", "content": {"a": "w"}},
            {"rowId": "f1", "content": "total"},
        ],
        "titleRowCount": 1,
        "footerRowCount": 1,
    })
    return g


# ============================================================================
# 文件 Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
