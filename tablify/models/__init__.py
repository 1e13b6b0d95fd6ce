"""
数据模型层 - 定义序列化格式与位置描述

所有模块通过这些模型交互：
- GridDescriptor/ColumnDescriptor/RowDescriptor/CellDescriptor: 序列化描述符
- RowType/CellContentType: 行类型与单元格内容类型
- Position: 插入/移动的目标位置
"""

from .descriptor import (
    CellContentType,
    CellDescriptor,
    ColumnDescriptor,
    GridDescriptor,
    RowDescriptor,
    RowType,
)
from .position import (
    FIRST,
    LAST,
    Absolute,
    After,
    First,
    Last,
    Position,
    RelativeTo,
    parse_position,
    resolve_index,
)

__all__ = [
    "RowType",
    "CellContentType",
    "CellDescriptor",
    "ColumnDescriptor",
    "RowDescriptor",
    "GridDescriptor",
    "Position",
    "Absolute",
    "First",
    "Last",
    "RelativeTo",
    "After",
    "FIRST",
    "LAST",
    "parse_position",
    "resolve_index",
]
