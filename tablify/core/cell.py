"""
单元格 - 内容模型

内容三选一：
- str: 原样输出（不转义）
- 外部内容（OpaqueHandle）: 复制时不克隆，新单元格与原单元格共享同一句柄
- 嵌套表格（Grid）: 复制时递归深拷贝

定义输入（from_definition）：
None / str / 外部内容 / Grid / 表格描述 / 单元格描述 / 已有Cell（复制）

测试要点：
- test_copy_string_and_opaque: 复制规则（外部内容共享）
- test_copy_nested_grid: 嵌套表格深拷贝
- test_serialize_round_trip: 序列化往返
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Union

from pydantic import TypeAdapter, ValidationError

from ..interfaces import DefinitionError, OpaqueHandle
from ..models import CellContentType, CellDescriptor, GridDescriptor
from .renderer import NullRenderer

if TYPE_CHECKING:
    from .entities import Column, Row
    from .grid import Grid

    CellContent = Union[str, OpaqueHandle, Grid]

logger = logging.getLogger(__name__)

_CELL_DATA = TypeAdapter(Union[CellDescriptor, GridDescriptor])


class Cell:
    """单元格"""

    def __init__(self, content: CellContent = ""):
        self._content: CellContent = ""
        self.row: Row | None = None
        self.column: Column | None = None
        self.render_handle: Any = None
        self.content = content

    @property
    def content(self) -> CellContent:
        return self._content

    @content.setter
    def content(self, value: CellContent) -> None:
        from .grid import Grid

        if not isinstance(value, (str, Grid, OpaqueHandle)):
            raise DefinitionError(f"无效的单元格内容: {type(value).__name__}")
        previous = self._content
        if isinstance(previous, Grid) and previous.parent_cell is self:
            previous._set_parent_cell(None)
            # 旧的嵌套表格只解除关联，不销毁
            logger.info(f"嵌套表格 \"{previous.grid_id}\" 已从单元格解除，需要时请手动销毁")
        self._content = value
        if isinstance(value, Grid):
            value._set_parent_cell(self)

    @property
    def content_type(self) -> CellContentType:
        from .grid import Grid

        if isinstance(self._content, str):
            return CellContentType.STRING
        if isinstance(self._content, Grid):
            return CellContentType.GRID
        return CellContentType.OPAQUE

    # === 构造 ===

    @classmethod
    def from_definition(cls, definition: Any = None, owner: Grid | None = None) -> Cell:
        """
        根据定义创建单元格

        Args:
            definition: 单元格定义（见模块说明）
            owner: 将拥有该单元格的表格；嵌套表格沿用其渲染器/ID生成器/配置

        Returns:
            新单元格
        """
        from .grid import Grid

        if definition is None:
            return cls("")
        if isinstance(definition, Cell):
            return definition.copy()
        if isinstance(definition, (str, Grid)):
            return cls(definition)
        if isinstance(definition, GridDescriptor):
            return cls(Grid(definition, **_family(owner)))
        if isinstance(definition, CellDescriptor):
            return cls._from_descriptor(definition, owner)
        if isinstance(definition, Mapping):
            return cls._from_mapping(definition, owner)
        if isinstance(definition, OpaqueHandle):
            return cls(definition)
        raise DefinitionError(f"无法识别的单元格定义: {type(definition).__name__}")

    @classmethod
    def _from_descriptor(cls, descriptor: CellDescriptor, owner: Grid | None) -> Cell:
        from .grid import Grid

        if descriptor.content is None:
            return cls("")
        if descriptor.content_type is CellContentType.GRID:
            return cls(Grid(descriptor.content, **_family(owner)))
        if descriptor.content_type is CellContentType.OPAQUE:
            renderer = owner.renderer if owner is not None else NullRenderer()
            return cls(renderer.restore_handle(descriptor.content))
        return cls(descriptor.content)

    @classmethod
    def _from_mapping(cls, definition: Mapping, owner: Grid | None) -> Cell:
        content = definition.get("content")
        # {"content": <Cell/Grid/外部内容>} 形式
        if set(definition) == {"content"} and not isinstance(content, (str, Mapping, type(None))):
            return cls.from_definition(content, owner)
        try:
            parsed = _CELL_DATA.validate_python(dict(definition))
        except ValidationError as e:
            raise DefinitionError(f"单元格描述无效: {e}") from e
        return cls.from_definition(parsed, owner)

    def copy(self) -> Cell:
        """复制（嵌套表格深拷贝，外部内容共享引用）"""
        from .grid import Grid

        if isinstance(self._content, Grid):
            return Cell(self._content.copy())
        return Cell(self._content)

    # === 序列化 ===

    def to_descriptor(self, include_content: bool = True) -> CellDescriptor:
        from .grid import Grid

        if not include_content:
            return CellDescriptor()
        if isinstance(self._content, Grid):
            return CellDescriptor(
                content=self._content.to_descriptor(include_content),
                content_type=CellContentType.GRID,
            )
        if isinstance(self._content, str):
            return CellDescriptor(content=self._content, content_type=CellContentType.STRING)
        return CellDescriptor(content=self._content.snapshot(), content_type=CellContentType.OPAQUE)

    def serialize(self, include_content: bool = True) -> dict[str, Any]:
        """转换为纯数据（include_content=False 时只含元数据）"""
        return self.to_descriptor(include_content).model_dump(
            by_alias=True, exclude_none=True, mode="json"
        )

    def __repr__(self) -> str:
        return f"Cell({self.content_type.value}: {self._content!r})"


def _family(owner: Grid | None) -> dict[str, Any]:
    """嵌套表格沿用外层表格的渲染器/ID生成器/配置"""
    if owner is None:
        return {}
    return {
        "renderer": owner.renderer,
        "id_generator": owner.id_generator,
        "config": owner.config,
    }
