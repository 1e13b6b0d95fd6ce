"""
对象转表格

- dict: 两行（表头行 "key"，表体行 "value"），每个键一列
- list/tuple: 两行（表头行 "index"，表体行 "value"），每个元素一列
- 其他值: 两行一列（表头 "type" 为类型名，表体 "value" 为 str(值)）

值本身是 dict/list/tuple 时递归转换为嵌套表格，整棵树共享一个ID生成器。
键为空或与已有列ID重复时，该列使用生成的ID。
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Iterable

from ..config import TablifyConfig, get_config
from ..interfaces import IRenderer
from ..models import RowType
from .grid import Grid
from .identity import IdGenerator

if TYPE_CHECKING:
    from .registry import GridRegistry


def tablify(
    obj: Any,
    *,
    renderer: IRenderer | None = None,
    id_generator: IdGenerator | None = None,
    config: TablifyConfig | None = None,
    registry: GridRegistry | None = None,
) -> Grid:
    """
    把任意对象转换为表格

    Args:
        obj: 要转换的对象
        registry: 只登记最外层表格

    Returns:
        最外层表格
    """
    config = config or get_config()
    family = {
        "renderer": renderer,
        "id_generator": id_generator or IdGenerator.from_config(config.identity),
        "config": config,
    }
    return _convert(obj, family, registry)


def _convert(obj: Any, family: dict[str, Any], registry: GridRegistry | None = None) -> Grid:
    if isinstance(obj, Mapping):
        return _key_value_grid("key", ((str(k), v) for k, v in obj.items()), family, registry)
    if isinstance(obj, (list, tuple)):
        return _key_value_grid("index", ((str(i), v) for i, v in enumerate(obj)), family, registry)

    grid = Grid(registry=registry, **family)
    grid.add_row("type", RowType.TITLE)
    grid.add_row("value", RowType.BODY)
    grid.add_column({"columnId": "content", "content": {"type": type(obj).__name__, "value": str(obj)}})
    return grid


def _key_value_grid(
    label: str,
    items: Iterable[tuple[str, Any]],
    family: dict[str, Any],
    registry: GridRegistry | None,
) -> Grid:
    grid = Grid(
        {"rows": [{"rowId": label}, {"rowId": "value"}], "titleRowCount": 1},
        registry=registry,
        **family,
    )
    for key, value in items:
        if isinstance(value, (Mapping, list, tuple)):
            content = _convert(value, family)
        else:
            content = str(value)
        definition: dict[str, Any] = {"content": {label: key, "value": content}}
        # 空键或重复键（如 1 与 "1"）改用生成的列ID
        if key and grid.get_column(key) is None:
            definition["columnId"] = key
        grid.add_column(definition)
    return grid
