"""
表格 - 行轴 + 列轴 + 单元格全交叉

职责：
1. 组合两条有序轴，保证每行每列恰有一个单元格
2. 行轴分为连续的 表头/表体/表尾 三段，行的插入/移动/排序限制在所属区段内
3. 默认内容回退：行内显式内容 > 整行内容 > 列模板 > 表格级默认值
4. 序列化/反序列化（描述符往返）、深拷贝、销毁
5. 把结构变化通知渲染层与观察者（回调异常只记录日志）

状态机：
    CONSTRUCTING -> READY -> DESTROYED

所有校验在修改之前完成，失败时表格保持原状。

测试要点：
- test_default_content_precedence: 默认内容优先级
- test_generate_missing_rows_disabled: 未开启时不生成缺失行
- test_round_trip: 描述符往返
- test_use_after_destroy: 销毁后调用
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable

from pydantic import ValidationError

from ..config import TablifyConfig, get_config
from ..interfaces import DefinitionError, IGridObserver, IRenderer, UseAfterDestroyError
from ..models import GridDescriptor, RowType
from .axis import AxisEntity, OrderedAxis
from .cell import Cell
from .definitions import RowSpec, classify_column, classify_row
from .entities import Column, Row
from .identity import EntityKind, IdGenerator, validate_id
from .renderer import NullRenderer

if TYPE_CHECKING:
    from .registry import GridRegistry

logger = logging.getLogger(__name__)

_SECTIONS = (RowType.TITLE, RowType.BODY, RowType.FOOTER)


class GridState(str, Enum):
    """表格生命周期状态"""
    CONSTRUCTING = "constructing"
    READY = "ready"
    DESTROYED = "destroyed"


class Grid:
    """表格"""

    def __init__(
        self,
        descriptor: GridDescriptor | Mapping | Grid | None = None,
        *,
        grid_id: str | None = None,
        renderer: IRenderer | None = None,
        id_generator: IdGenerator | None = None,
        config: TablifyConfig | None = None,
        registry: GridRegistry | None = None,
    ):
        """
        创建表格

        Args:
            descriptor: 表格描述（模型或纯数据），或要复制的表格
            grid_id: 表格ID，缺省时自动生成
            renderer: 渲染器，缺省为 NullRenderer
            id_generator: ID生成器，嵌套/复制产生的表格共享同一个
            config: 运行期配置，缺省为全局配置
            registry: 登记表，给出时创建完成后自动登记

        Raises:
            DefinitionError: 描述无效
            DuplicateIdError: 描述中ID重复
        """
        self._state = GridState.CONSTRUCTING
        self.config = config or get_config()
        self.renderer = renderer or NullRenderer()
        self.id_generator = id_generator or IdGenerator.from_config(self.config.identity)
        self._rows: OrderedAxis[Row] = OrderedAxis("rows")
        self._columns: OrderedAxis[Column] = OrderedAxis("columns")
        self._section_sizes = {kind: 0 for kind in _SECTIONS}
        self._observers: list[IGridObserver] = []
        self._parent_cell: weakref.ref[Cell] | None = None
        self._registry = registry

        source = self._parse(descriptor)
        if grid_id is None and isinstance(source, GridDescriptor):
            grid_id = source.grid_id
        self.grid_id = grid_id or self.id_generator.generate_id(EntityKind.GRID)

        if source is not None:
            self._load(source)
        self._state = GridState.READY
        logger.debug(
            f"表格 \"{self.grid_id}\" 已创建: "
            f"{len(self._rows)} 行 x {len(self._columns)} 列"
        )
        if registry is not None:
            registry.register(self)

    @classmethod
    def from_descriptor(cls, descriptor: GridDescriptor | Mapping, **kwargs: Any) -> Grid:
        """从描述符重建表格（参数同构造函数）"""
        return cls(descriptor, **kwargs)

    # === 状态 ===

    @property
    def state(self) -> GridState:
        return self._state

    @property
    def destroyed(self) -> bool:
        return self._state is GridState.DESTROYED

    @property
    def parent_cell(self) -> Cell | None:
        """包含本表格的单元格（仅供参考，不参与复制与序列化）"""
        return self._parent_cell() if self._parent_cell is not None else None

    def _set_parent_cell(self, cell: Cell | None) -> None:
        self._parent_cell = weakref.ref(cell) if cell is not None else None

    def _ensure_ready(self) -> None:
        if self._state is GridState.DESTROYED:
            raise UseAfterDestroyError(f"表格 \"{self.grid_id}\" 已销毁")

    # === 观察者 ===

    def subscribe(self, observer: IGridObserver) -> None:
        self._ensure_ready()
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: IGridObserver) -> bool:
        self._ensure_ready()
        if observer not in self._observers:
            return False
        self._observers.remove(observer)
        return True

    # === 查询 ===

    def get_row(self, ref: Any) -> Row | None:
        """按ID、下标或行对象查找"""
        self._ensure_ready()
        return self._rows.get(ref)

    def get_column(self, ref: Any) -> Column | None:
        """按ID、下标或列对象查找"""
        self._ensure_ready()
        return self._columns.get(ref)

    def get_cell(self, row_ref: Any, column_ref: Any) -> Cell | None:
        row = self.get_row(row_ref)
        column = self.get_column(column_ref)
        if row is None or column is None:
            return None
        return row._cells.get(column.entity_id)

    def get_rows(self, kind: RowType | str | None = None) -> list[Row]:
        """按顺序返回行（给出 kind 时只返回该区段）"""
        self._ensure_ready()
        if kind is None:
            return self._rows.entities()
        return self._rows.entities(self._section_bounds(RowType(kind)))

    def get_columns(self) -> list[Column]:
        self._ensure_ready()
        return self._columns.entities()

    def get_column_cells(self, ref: Any) -> list[Cell] | None:
        column = self.get_column(ref)
        return column.get_cells() if column is not None else None

    def get_row_index(self, ref: Any) -> int | None:
        self._ensure_ready()
        return self._rows.index_of(ref)

    def get_column_index(self, ref: Any) -> int | None:
        self._ensure_ready()
        return self._columns.index_of(ref)

    def get_row_count(self, kind: RowType | str | None = None) -> int:
        self._ensure_ready()
        if kind is None:
            return len(self._rows)
        return self._section_sizes[RowType(kind)]

    def get_column_count(self) -> int:
        self._ensure_ready()
        return len(self._columns)

    # === 增加 ===

    def add_row(
        self,
        definition: Any = None,
        kind: RowType | str | None = None,
        position: Any = None,
    ) -> Row:
        """
        增加一行

        Args:
            definition: 行定义（见 core.definitions）
            kind: 行类型；缺省时取定义中的 rowType，再缺省为 body
            position: 在所属区段内的位置（见 models.position）

        Returns:
            新行

        Raises:
            DuplicateIdError: 行ID（或要生成的缺失列ID）已存在
            InvalidPositionError: 位置无效
            DefinitionError: 定义无法识别
        """
        self._ensure_ready()
        return self._add_row(definition, kind, position)

    def add_column(self, definition: Any = None, position: Any = None) -> Column:
        """
        增加一列（与 add_row 对称，缺失的行以 body 类型生成）

        Returns:
            新列
        """
        self._ensure_ready()
        return self._add_column(definition, position)

    def _add_row(self, definition: Any, kind: RowType | str | None = None, position: Any = None) -> Row:
        spec = classify_row(definition)
        try:
            kind = RowType(kind) if kind is not None else (spec.row_type or RowType.BODY)
        except ValueError as e:
            raise DefinitionError(f"未知的行类型: {kind!r}") from e

        # 1. 校验与解析（不修改状态）
        if spec.row_id is not None:
            row_id = validate_id(spec.row_id, self._rows)
        else:
            row_id = self.id_generator.generate_id(EntityKind.ROW, self._rows)
        index = self._rows.resolve_insert(position, bounds=self._section_bounds(kind))

        missing = [cid for cid in spec.cells if cid not in self._columns]
        new_columns = missing if spec.generate_missing_columns else []
        if missing and not spec.generate_missing_columns:
            logger.debug(f"行 \"{row_id}\" 引用了不存在的列，已忽略: {missing}")
        for column_id in new_columns:
            validate_id(column_id, self._columns)

        fill = Cell.from_definition(spec.fill, owner=self) if spec.has_fill else None
        cells: dict[str, Cell] = {}
        for column in self._columns:
            cells[column.entity_id] = self._row_cell(spec, fill, column, kind)
        for column_id in new_columns:
            cells[column_id] = Cell.from_definition(spec.cells[column_id], owner=self)

        # 2. 提交：先生成缺失的列，再挂载新行
        for column_id in new_columns:
            self._add_column(column_id)

        row = Row(self, row_id, kind, visible=spec.visible)
        for column in self._columns:
            row._attach_cell(column, cells[column.entity_id])
        self._rows.insert_at(row, index)
        self._section_sizes[kind] += 1

        self._materialize(row, row._cells.values())
        self._notify("on_row_added", row, row.position)
        logger.debug(f"表格 \"{self.grid_id}\" 增加{kind.value}行 \"{row_id}\" @ {row.position}")
        return row

    def _row_cell(self, spec: RowSpec, fill: Cell | None, column: Column, kind: RowType) -> Cell:
        if column.entity_id in spec.cells:
            return Cell.from_definition(spec.cells[column.entity_id], owner=self)
        if fill is not None:
            return fill.copy()
        return self._default_cell(column, kind)

    def _add_column(self, definition: Any, position: Any = None) -> Column:
        spec = classify_column(definition)

        # 1. 校验与解析（不修改状态）
        if spec.column_id is not None:
            column_id = validate_id(spec.column_id, self._columns)
        else:
            column_id = self.id_generator.generate_id(EntityKind.COLUMN, self._columns)
        index = self._columns.resolve_insert(position)

        missing = [rid for rid in spec.cells if rid not in self._rows]
        new_rows = missing if spec.generate_missing_rows else []
        if missing and not spec.generate_missing_rows:
            logger.debug(f"列 \"{column_id}\" 引用了不存在的行，已忽略: {missing}")
        for row_id in new_rows:
            validate_id(row_id, self._rows)

        templates = {
            kind: Cell.from_definition(template, owner=self)
            for kind, template in spec.templates.items()
        }
        column = Column(self, column_id, templates, visible=spec.visible)
        cells: dict[str, Cell] = {}
        for row in self._rows:
            if row.entity_id in spec.cells:
                cells[row.entity_id] = Cell.from_definition(spec.cells[row.entity_id], owner=self)
            else:
                cells[row.entity_id] = self._default_cell(column, row.row_type)
        for row_id in new_rows:
            cells[row_id] = Cell.from_definition(spec.cells[row_id], owner=self)

        # 2. 提交：先生成缺失的行，再挂载新列
        for row_id in new_rows:
            self._add_row(row_id, RowType.BODY)

        self._columns.insert_at(column, index)
        for row in self._rows:
            row._attach_cell(column, cells[row.entity_id])

        self._materialize(column, column.get_cells())
        self._notify("on_column_added", column, column.position)
        logger.debug(f"表格 \"{self.grid_id}\" 增加列 \"{column_id}\" @ {column.position}")
        return column

    def _default_cell(self, column: Column, kind: RowType) -> Cell:
        template = column.default_content(kind)
        if template is not None:
            return template.copy()
        logger.debug(f"列 \"{column.entity_id}\" 未定义{kind.value}模板，使用表格级默认值")
        return Cell(self.config.default_content(kind.value, column.entity_id))

    # === 删除 ===

    def remove_row(self, ref: Any) -> bool:
        """删除行（连同其全部单元格），找不到返回False"""
        self._ensure_ready()
        row = self._rows.get(ref)
        if row is None:
            return False
        position = row.position
        self._rows.remove(row)
        self._section_sizes[row.row_type] -= 1
        for column_id in list(row._cells):
            self._teardown(row._detach_cell(column_id))
        self._teardown(row)
        self._notify("on_row_removed", row, position)
        row._destroy()
        logger.debug(f"表格 \"{self.grid_id}\" 删除行 \"{row.entity_id}\"")
        return True

    def remove_column(self, ref: Any) -> bool:
        """删除列（连同各行中对应的单元格），找不到返回False"""
        self._ensure_ready()
        column = self._columns.get(ref)
        if column is None:
            return False
        position = column.position
        self._columns.remove(column)
        for row in self._rows:
            self._teardown(row._detach_cell(column.entity_id))
        self._teardown(column)
        self._notify("on_column_removed", column, position)
        column._destroy()
        logger.debug(f"表格 \"{self.grid_id}\" 删除列 \"{column.entity_id}\"")
        return True

    # === 移动/重排/排序 ===

    def move_row(self, ref: Any, position: Any) -> bool:
        """在行所属区段内移动，找不到返回False"""
        self._ensure_ready()
        row = self._rows.get(ref)
        if row is None:
            return False
        before = row.position
        self._rows.move(row, position, bounds=self._section_bounds(row.row_type))
        if row.position != before:
            self._notify("on_reordered", row, row.position)
        return True

    def move_column(self, ref: Any, position: Any) -> bool:
        self._ensure_ready()
        column = self._columns.get(ref)
        if column is None:
            return False
        before = column.position
        self._columns.move(column, position)
        if column.position != before:
            self._notify("on_reordered", column, column.position)
        return True

    def order_rows(self, new_order: Iterable[Any]) -> None:
        """按给定顺序部分重排（各区段分别重排，未提及的行保持相对顺序排在后面）"""
        self._ensure_ready()
        new_order = list(new_order)
        for kind in _SECTIONS:
            self._notify_reordered(self._rows.reorder(new_order, bounds=self._section_bounds(kind)))

    def order_columns(self, new_order: Iterable[Any]) -> None:
        self._ensure_ready()
        self._notify_reordered(self._columns.reorder(new_order))

    def sort_rows(
        self,
        comparator: Callable[[Row, Row], bool] | None = None,
        *,
        key: Callable[[Row], Any] | None = None,
    ) -> None:
        """稳定排序（各区段分别排序）"""
        self._ensure_ready()
        for kind in _SECTIONS:
            changed = self._rows.sort(comparator, key=key, bounds=self._section_bounds(kind))
            self._notify_reordered(changed)

    def sort_columns(
        self,
        comparator: Callable[[Column, Column], bool] | None = None,
        *,
        key: Callable[[Column], Any] | None = None,
    ) -> None:
        self._ensure_ready()
        self._notify_reordered(self._columns.sort(comparator, key=key))

    # === 单元格/可见性 ===

    def set_cell(self, row_ref: Any, column_ref: Any, definition: Any) -> Cell | None:
        """替换单元格，行或列不存在时返回None"""
        old = self.get_cell(row_ref, column_ref)
        if old is None:
            return None
        cell = Cell.from_definition(definition, owner=self)
        row, column = old.row, old.column
        self._teardown(row._detach_cell(column.entity_id))
        row._attach_cell(column, cell)
        cell.render_handle = self._render("materialize", cell)
        return cell

    def show_row(self, ref: Any, on_complete: Callable[[], None] | None = None) -> bool:
        return self._set_visible(self.get_row(ref), True, on_complete)

    def hide_row(self, ref: Any, on_complete: Callable[[], None] | None = None) -> bool:
        return self._set_visible(self.get_row(ref), False, on_complete)

    def show_column(self, ref: Any, on_complete: Callable[[], None] | None = None) -> bool:
        return self._set_visible(self.get_column(ref), True, on_complete)

    def hide_column(self, ref: Any, on_complete: Callable[[], None] | None = None) -> bool:
        return self._set_visible(self.get_column(ref), False, on_complete)

    def _set_visible(self, entity: AxisEntity | None, visible: bool, on_complete: Callable[[], None] | None) -> bool:
        if entity is None:
            return False
        entity.visible = visible
        self._render("set_visible", entity.render_handle, visible, on_complete)
        return True

    # === 序列化/复制 ===

    def to_descriptor(self, include_content: bool = True) -> GridDescriptor:
        """转换为描述符模型（列在前，行按 表头/表体/表尾 顺序）"""
        self._ensure_ready()
        return GridDescriptor(
            columns=[column.to_descriptor(include_content) for column in self._columns],
            rows=[row.to_descriptor(include_content) for row in self._rows],
            title_row_count=self._section_sizes[RowType.TITLE],
            footer_row_count=self._section_sizes[RowType.FOOTER],
        )

    def serialize(self, include_content: bool = True) -> dict[str, Any]:
        """转换为纯数据描述（JSON/YAML 兼容）"""
        return self.to_descriptor(include_content).model_dump(
            by_alias=True, exclude_none=True, mode="json"
        )

    def copy(self) -> Grid:
        """深拷贝（嵌套表格递归复制，外部内容共享引用）"""
        self._ensure_ready()
        return Grid(self, renderer=self.renderer, id_generator=self.id_generator, config=self.config)

    # === 销毁 ===

    def destroy(self) -> None:
        """
        销毁表格：释放渲染句柄，销毁全部行/列，清空状态并从登记表注销。
        嵌套表格不随之销毁；本表格若嵌套在单元格中，该单元格内容重置为空字符串。
        """
        self._ensure_ready()
        parent = self.parent_cell
        if parent is not None and parent.content is self:
            parent._content = ""
            logger.debug(f"嵌套表格 \"{self.grid_id}\" 销毁，所在单元格已清空")
        self._set_parent_cell(None)

        for row in self._rows:
            for cell in row._cells.values():
                self._teardown(cell)
            self._teardown(row)
        for column in self._columns:
            self._teardown(column)

        for row in self._rows.clear():
            for column_id in list(row._cells):
                row._detach_cell(column_id)
            row._destroy()
        for column in self._columns.clear():
            column._destroy()
        self._section_sizes = {kind: 0 for kind in _SECTIONS}
        self._observers.clear()
        self._state = GridState.DESTROYED
        logger.info(f"表格 \"{self.grid_id}\" 已销毁")

        if self._registry is not None:
            self._registry.unregister(self)
            self._registry = None

    # === 一致性 ===

    def validate_consistency(self) -> list[str]:
        """校验两条轴、区段与单元格全交叉，返回问题列表"""
        self._ensure_ready()
        problems = self._rows.validate_consistency() + self._columns.validate_consistency()
        if sum(self._section_sizes.values()) != len(self._rows):
            problems.append(f"区段行数之和 {self._section_sizes} 与行数 {len(self._rows)} 不一致")
        for kind in _SECTIONS:
            for row in self._rows.entities(self._section_bounds(kind)):
                if row.row_type is not kind:
                    problems.append(f"行 \"{row.entity_id}\" 位于{kind.value}区段但类型为 {row.row_type.value}")
        column_ids = set(self._columns.ids())
        for row in self._rows:
            if set(row._cells) != column_ids:
                problems.append(f"行 \"{row.entity_id}\" 的单元格与列不一致")
            for column_id, cell in row._cells.items():
                if cell.row is not row or cell.column is not self._columns.get(column_id):
                    problems.append(f"单元格 ({row.entity_id}, {column_id}) 归属不一致")
        return problems

    # === 内部 ===

    @staticmethod
    def _parse(descriptor: Any) -> GridDescriptor | Grid | None:
        if descriptor is None or isinstance(descriptor, (Grid, GridDescriptor)):
            return descriptor
        if isinstance(descriptor, Mapping):
            try:
                return GridDescriptor.model_validate(descriptor)
            except ValidationError as e:
                raise DefinitionError(f"表格描述无效: {e}") from e
        raise DefinitionError(f"无法识别的表格描述: {type(descriptor).__name__}")

    def _load(self, source: GridDescriptor | Grid) -> None:
        """回放 add_column/add_row 重建结构"""
        if isinstance(source, Grid):
            source._ensure_ready()
            for column in source._columns:
                self._add_column(column)
            for row in source._rows:
                self._add_row(row, row.row_type)
            return
        for column in source.columns:
            self._add_column(column)
        for i, row in enumerate(source.rows):
            self._add_row(row, source.row_kind(i))

    def _section_bounds(self, kind: RowType) -> tuple[int, int]:
        title = self._section_sizes[RowType.TITLE]
        body = self._section_sizes[RowType.BODY]
        if kind is RowType.TITLE:
            return 0, title
        if kind is RowType.BODY:
            return title, title + body
        return title + body, title + body + self._section_sizes[RowType.FOOTER]

    def _materialize(self, entity: Row | Column, cells: Iterable[Cell]) -> None:
        entity.render_handle = self._render("materialize", entity)
        for cell in cells:
            if cell.render_handle is None:
                cell.render_handle = self._render("materialize", cell)
        if not entity.visible:
            self._render("set_visible", entity.render_handle, False, None)

    def _teardown(self, target: AxisEntity | Cell | None) -> None:
        if target is None or target.render_handle is None:
            return
        self._render("teardown", target.render_handle)
        target.render_handle = None

    def _render(self, method: str, *args: Any) -> Any:
        try:
            return getattr(self.renderer, method)(*args)
        except Exception:
            logger.exception(f"渲染器 {method} 调用失败 (表格 \"{self.grid_id}\")")
            return None

    def _notify(self, event: str, entity: Row | Column, position: int | None) -> None:
        for observer in list(self._observers):
            try:
                getattr(observer, event)(entity, position)
            except Exception:
                logger.exception(f"观察者 {event} 回调失败 (表格 \"{self.grid_id}\")")

    def _notify_reordered(self, changed: list[Row] | list[Column]) -> None:
        for entity in changed:
            self._notify("on_reordered", entity, entity.position)

    def __repr__(self) -> str:
        if self.destroyed:
            return f"Grid({self.grid_id!r}, destroyed)"
        return f"Grid({self.grid_id!r}, rows={len(self._rows)}, columns={len(self._columns)})"
