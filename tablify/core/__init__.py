"""
核心层 - 二维有序实体模型

- OrderedAxis: 行轴/列轴共用的有序集合
- Grid/Row/Column/Cell: 表格结构
- IdGenerator: ID生成
- GridRegistry: 表格登记表
- tablify: 对象转表格
"""

from .axis import AxisEntity, OrderedAxis
from .cell import Cell
from .convert import tablify
from .entities import Column, Row
from .grid import Grid, GridState
from .identity import EntityKind, IdGenerator, validate_id
from .registry import GridRegistry
from .renderer import NullRenderer, SnapshotHandle

__all__ = [
    "AxisEntity",
    "OrderedAxis",
    "Cell",
    "Row",
    "Column",
    "Grid",
    "GridState",
    "EntityKind",
    "IdGenerator",
    "validate_id",
    "GridRegistry",
    "NullRenderer",
    "SnapshotHandle",
    "tablify",
]
