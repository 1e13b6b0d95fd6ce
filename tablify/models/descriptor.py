"""
描述符模型 - 表格序列化/反序列化使用的纯数据树

对应序列化格式：
    {
        "columns": [ColumnDescriptor, ...],
        "rows": [RowDescriptor, ...],
        "titleRowCount": 0,
        "footerRowCount": 0
    }

键名保持驼峰（columnId/rowId/...），Python侧字段用蛇形命名，两者都可用于输入。
单元格内容可以是字符串、外部内容快照，或嵌套的表格描述。
"""

from __future__ import annotations

from enum import Enum
from typing import Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class RowType(str, Enum):
    """行类型（表头/表体/表尾）"""
    TITLE = "title"
    BODY = "body"
    FOOTER = "footer"


class CellContentType(str, Enum):
    """单元格内容类型"""
    STRING = "string"   # 原样输出的字符串
    OPAQUE = "opaque"   # 外部内容（序列化为快照）
    GRID = "grid"       # 嵌套表格


class _Descriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class CellDescriptor(_Descriptor):
    """单元格描述（仅当序列化包含数据时才有 content/type）"""
    content: Union[str, GridDescriptor, None] = None
    content_type: CellContentType | None = Field(
        None,
        validation_alias=AliasChoices("type", "contentType", "content_type"),
        serialization_alias="type",
    )

    @model_validator(mode="after")
    def _check_content_type(self) -> CellDescriptor:
        if self.content is None:
            if self.content_type is not None:
                raise ValueError("content_type given without content")
            return self
        # 未标注类型时按内容推断
        if self.content_type is None:
            self.content_type = (
                CellContentType.GRID
                if isinstance(self.content, GridDescriptor)
                else CellContentType.STRING
            )
        is_grid = isinstance(self.content, GridDescriptor)
        if is_grid != (self.content_type is CellContentType.GRID):
            raise ValueError(f"content does not match type {self.content_type.value}")
        return self


class ColumnDescriptor(_Descriptor):
    """列描述"""
    column_id: str | None = Field(None, alias="columnId")
    default_title_content: CellDefinitionData | None = Field(None, alias="defaultTitleContent")
    default_body_content: CellDefinitionData | None = Field(None, alias="defaultBodyContent")
    default_footer_content: CellDefinitionData | None = Field(None, alias="defaultFooterContent")
    visible: bool = True

    # 仅用于输入：新列在已有行中的内容 {rowId: 单元格定义}
    content: dict[str, CellDefinitionData] | None = None
    generate_missing_rows: bool | None = Field(None, alias="generateMissingRows")

    def default_for(self, kind: RowType) -> CellDefinitionData | None:
        """获取指定行类型的默认模板"""
        return getattr(self, f"default_{kind.value}_content")


class RowDescriptor(_Descriptor):
    """行描述"""
    row_id: str | None = Field(None, alias="rowId")
    row_type: RowType | None = Field(None, alias="rowType")
    # {columnId: 单元格定义}；字符串表示整行使用同一内容
    content: Union[dict[str, CellDefinitionData], str, None] = None
    visible: bool = True

    # 仅用于输入
    generate_missing_columns: bool | None = Field(None, alias="generateMissingColumns")


class GridDescriptor(_Descriptor):
    """表格描述"""
    grid_id: str | None = Field(None, alias="gridId")
    columns: list[ColumnDescriptor] = Field(default_factory=list)
    rows: list[RowDescriptor] = Field(default_factory=list)
    title_row_count: int = Field(0, ge=0, alias="titleRowCount")
    footer_row_count: int = Field(0, ge=0, alias="footerRowCount")

    @model_validator(mode="after")
    def _check_section_counts(self) -> GridDescriptor:
        if self.title_row_count + self.footer_row_count > len(self.rows):
            raise ValueError(
                f"titleRowCount + footerRowCount ({self.title_row_count} + "
                f"{self.footer_row_count}) exceeds row count {len(self.rows)}"
            )
        return self

    def row_kind(self, index: int) -> RowType:
        """按表头/表尾行数确定第 index 行的类型（区段外使用行自身的 rowType）"""
        if index < self.title_row_count:
            return RowType.TITLE
        if index >= len(self.rows) - self.footer_row_count:
            return RowType.FOOTER
        return self.rows[index].row_type or RowType.BODY


# 单元格定义的纯数据形式（列内容/行内容中使用）
CellDefinitionData = Union[CellDescriptor, GridDescriptor, str]

CellDescriptor.model_rebuild()
ColumnDescriptor.model_rebuild()
RowDescriptor.model_rebuild()
GridDescriptor.model_rebuild()
