"""
行/列定义分类 - 在构建实体之前把各种输入统一成 RowSpec/ColumnSpec

支持的行定义：
- None                  自动ID，全部使用默认内容
- str                   行ID
- Row                   复制（保留ID、类型、可见性与单元格内容）
- RowDescriptor         描述符模型
- Mapping               驼峰或蛇形键：rowId/rowType/content/visible/generateMissingColumns

列定义同理（columnId/defaultTitleContent/defaultBodyContent/defaultFooterContent/
visible/content/generateMissingRows）。

分类只读取输入，不修改任何表格状态；未知字段抛出 DefinitionError。
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from ..interfaces import DefinitionError
from ..models import ColumnDescriptor, RowDescriptor, RowType
from .entities import Column, Row


@dataclass
class RowSpec:
    """已分类的行定义"""
    row_id: str | None = None
    row_type: RowType | None = None
    cells: dict[str, Any] = field(default_factory=dict)  # {columnId: 单元格定义}
    fill: Any = None                                     # 整行共用的内容
    has_fill: bool = False
    visible: bool = True
    generate_missing_columns: bool = False


@dataclass
class ColumnSpec:
    """已分类的列定义"""
    column_id: str | None = None
    templates: dict[RowType, Any] = field(default_factory=dict)
    cells: dict[str, Any] = field(default_factory=dict)  # {rowId: 单元格定义}
    visible: bool = True
    generate_missing_rows: bool = False


def _field_names(model: type[BaseModel]) -> dict[str, str]:
    """输入键 -> 字段名（字段名与别名都可用）"""
    names = {}
    for name, info in model.model_fields.items():
        names[name] = name
        if info.alias:
            names[info.alias] = name
    return names


_ROW_FIELDS = _field_names(RowDescriptor)
_COLUMN_FIELDS = _field_names(ColumnDescriptor)


def _normalize(definition: Mapping, names: dict[str, str], what: str) -> dict[str, Any]:
    result = {}
    for key, value in definition.items():
        name = names.get(key)
        if name is None:
            raise DefinitionError(f"{what}定义包含未知字段: {key!r}")
        result[name] = value
    return result


def _descriptor_fields(model: BaseModel) -> dict[str, Any]:
    """描述符模型 -> 字段字典（只取显式给出的字段）"""
    return {name: getattr(model, name) for name in model.model_fields_set}


def _check_id(value: Any, what: str) -> str | None:
    if value is None or (isinstance(value, str) and value):
        return value
    raise DefinitionError(f"无效的{what}ID: {value!r}")


def _check_flag(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise DefinitionError(f"{name} 必须是布尔值: {value!r}")
    return value


def _check_cells(content: Any, what: str) -> dict[str, Any]:
    if not isinstance(content, Mapping):
        raise DefinitionError(f"{what}内容必须是映射: {type(content).__name__}")
    for key in content:
        if not isinstance(key, str) or not key:
            raise DefinitionError(f"{what}内容的键必须是非空字符串: {key!r}")
    return dict(content)


def classify_row(definition: Any) -> RowSpec:
    """行定义分类"""
    if definition is None:
        return RowSpec()
    if isinstance(definition, str):
        return RowSpec(row_id=_check_id(definition, "行"))
    if isinstance(definition, Row):
        return RowSpec(
            row_id=definition.row_id,
            row_type=definition.row_type,
            cells={cell.column.entity_id: cell for cell in definition.get_cells()},
            visible=definition.visible,
        )
    if isinstance(definition, RowDescriptor):
        fields = _descriptor_fields(definition)
    elif isinstance(definition, Mapping):
        fields = _normalize(definition, _ROW_FIELDS, "行")
    else:
        raise DefinitionError(f"无法识别的行定义: {type(definition).__name__}")

    spec = RowSpec(row_id=_check_id(fields.get("row_id"), "行"))
    row_type = fields.get("row_type")
    if row_type is not None:
        try:
            spec.row_type = RowType(row_type)
        except ValueError as e:
            raise DefinitionError(f"未知的行类型: {row_type!r}") from e
    if "visible" in fields:
        spec.visible = _check_flag(fields["visible"], "visible")
    if fields.get("generate_missing_columns") is not None:
        spec.generate_missing_columns = _check_flag(
            fields["generate_missing_columns"], "generateMissingColumns"
        )

    content = fields.get("content")
    if isinstance(content, Mapping):
        spec.cells = _check_cells(content, "行")
    elif content is not None:
        spec.fill = content
        spec.has_fill = True
    return spec


def classify_column(definition: Any) -> ColumnSpec:
    """列定义分类"""
    if definition is None:
        return ColumnSpec()
    if isinstance(definition, str):
        return ColumnSpec(column_id=_check_id(definition, "列"))
    if isinstance(definition, Column):
        return ColumnSpec(
            column_id=definition.column_id,
            templates={
                kind: definition.default_content(kind)
                for kind in RowType
                if definition.default_content(kind) is not None
            },
            cells={cell.row.entity_id: cell for cell in definition.get_cells()},
            visible=definition.visible,
        )
    if isinstance(definition, ColumnDescriptor):
        fields = _descriptor_fields(definition)
    elif isinstance(definition, Mapping):
        fields = _normalize(definition, _COLUMN_FIELDS, "列")
    else:
        raise DefinitionError(f"无法识别的列定义: {type(definition).__name__}")

    spec = ColumnSpec(column_id=_check_id(fields.get("column_id"), "列"))
    for kind in RowType:
        template = fields.get(f"default_{kind.value}_content")
        if template is not None:
            spec.templates[kind] = template
    if "visible" in fields:
        spec.visible = _check_flag(fields["visible"], "visible")
    if fields.get("generate_missing_rows") is not None:
        spec.generate_missing_rows = _check_flag(fields["generate_missing_rows"], "generateMissingRows")
    if fields.get("content") is not None:
        spec.cells = _check_cells(fields["content"], "列")
    return spec
