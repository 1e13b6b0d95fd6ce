"""
行/列实体

- Row: 保存本行的全部单元格 {columnId: Cell}（单元格只在行上存一份）
- Column: 保存每种行类型的默认内容模板，单元格按行轴顺序派生

所有变更都经由所属 Grid 完成，实体本身只提供查询与便捷转发。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Mapping

from ..models import ColumnDescriptor, RowDescriptor, RowType
from .axis import AxisEntity
from .identity import EntityKind

if TYPE_CHECKING:
    from .cell import Cell
    from .grid import Grid


class Row(AxisEntity):
    """表格行"""

    kind = EntityKind.ROW

    def __init__(self, grid: Grid, row_id: str, row_type: RowType = RowType.BODY, visible: bool = True):
        super().__init__(row_id, grid)
        self._row_type = RowType(row_type)
        self.visible = visible
        self._cells: dict[str, Cell] = {}

    @property
    def row_id(self) -> str:
        return self.entity_id

    @property
    def row_type(self) -> RowType:
        return self._row_type

    def get_cell(self, column_ref: Any) -> Cell | None:
        """按列ID/下标/列对象获取单元格"""
        column = self.grid.get_column(column_ref)
        if column is None:
            return None
        return self._cells.get(column.entity_id)

    def get_cells(self) -> list[Cell]:
        """按列顺序返回本行单元格"""
        return [self._cells[c.entity_id] for c in self.grid.get_columns()]

    def remove(self) -> bool:
        return self.grid.remove_row(self)

    def show(self, on_complete: Callable[[], None] | None = None) -> bool:
        return self.grid.show_row(self, on_complete)

    def hide(self, on_complete: Callable[[], None] | None = None) -> bool:
        return self.grid.hide_row(self, on_complete)

    def to_descriptor(self, include_content: bool = True) -> RowDescriptor:
        content = None
        if include_content:
            content = {cell.column.entity_id: cell.to_descriptor(True) for cell in self.get_cells()}
        return RowDescriptor(
            row_id=self.entity_id,
            row_type=self._row_type,
            content=content,
            visible=self.visible,
        )

    def _attach_cell(self, column: Column, cell: Cell) -> None:
        cell.row = self
        cell.column = column
        self._cells[column.entity_id] = cell

    def _detach_cell(self, column_id: str) -> Cell | None:
        cell = self._cells.pop(column_id, None)
        if cell is not None:
            cell.row = None
            cell.column = None
        return cell


class Column(AxisEntity):
    """表格列"""

    kind = EntityKind.COLUMN

    def __init__(
        self,
        grid: Grid,
        column_id: str,
        templates: Mapping[RowType, Cell | None] | None = None,
        visible: bool = True,
    ):
        super().__init__(column_id, grid)
        templates = templates or {}
        self._templates: dict[RowType, Cell | None] = {kind: templates.get(kind) for kind in RowType}
        self.visible = visible

    @property
    def column_id(self) -> str:
        return self.entity_id

    @property
    def default_title_content(self) -> Cell | None:
        return self._templates[RowType.TITLE]

    @property
    def default_body_content(self) -> Cell | None:
        return self._templates[RowType.BODY]

    @property
    def default_footer_content(self) -> Cell | None:
        return self._templates[RowType.FOOTER]

    def default_content(self, kind: RowType) -> Cell | None:
        """指定行类型的默认模板（未定义时为None，由表格级默认值兜底）"""
        return self._templates[RowType(kind)]

    def set_default_content(self, kind: RowType, definition: Any) -> None:
        """
        设置默认模板（只影响之后新增的行）

        Args:
            kind: 行类型
            definition: 单元格定义；None 表示清除模板
        """
        from .cell import Cell

        grid = self.grid
        self._templates[RowType(kind)] = (
            None if definition is None else Cell.from_definition(definition, owner=grid)
        )

    def get_cell(self, row_ref: Any) -> Cell | None:
        """按行ID/下标/行对象获取单元格"""
        row = self.grid.get_row(row_ref)
        if row is None:
            return None
        return row._cells.get(self.entity_id)

    def get_cells(self) -> list[Cell]:
        """按行顺序返回本列单元格"""
        return [row._cells[self.entity_id] for row in self.grid.get_rows()]

    def remove(self) -> bool:
        return self.grid.remove_column(self)

    def show(self, on_complete: Callable[[], None] | None = None) -> bool:
        return self.grid.show_column(self, on_complete)

    def hide(self, on_complete: Callable[[], None] | None = None) -> bool:
        return self.grid.hide_column(self, on_complete)

    def to_descriptor(self, include_content: bool = True) -> ColumnDescriptor:
        templates = {}
        if include_content:
            templates = {
                f"default_{kind.value}_content": cell.to_descriptor(True)
                for kind, cell in self._templates.items()
                if cell is not None
            }
        return ColumnDescriptor(column_id=self.entity_id, visible=self.visible, **templates)
