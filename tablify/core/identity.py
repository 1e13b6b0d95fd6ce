"""
标识生成 - 行/列/表格的唯一ID

职责：
1. 按实体种类独立计数，生成带前缀的ID（默认 jsr1/jsc1/jsg1）
2. 跳过目标轴上已被用户占用的ID
3. 校验用户给出的ID

计数器由调用方注入（IdGenerator实例），同一"表格家族"（嵌套/复制产生的表格）共享一个生成器。
"""

from __future__ import annotations

import itertools
from enum import Enum
from typing import TYPE_CHECKING, Container, Mapping

from ..interfaces import DefinitionError, DuplicateIdError

if TYPE_CHECKING:
    from ..config import IdentityConfig


class EntityKind(str, Enum):
    """实体种类（各自独立的ID空间）"""
    ROW = "row"
    COLUMN = "column"
    GRID = "grid"


DEFAULT_PREFIXES: dict[EntityKind, str] = {
    EntityKind.ROW: "jsr",
    EntityKind.COLUMN: "jsc",
    EntityKind.GRID: "jsg",
}


class IdGenerator:
    """ID生成器（单调递增，不会重复发放）"""

    def __init__(self, prefixes: Mapping[EntityKind, str] | None = None, start: int = 1):
        self.prefixes = {**DEFAULT_PREFIXES, **(prefixes or {})}
        self._counters = {kind: itertools.count(start) for kind in EntityKind}

    @classmethod
    def from_config(cls, config: IdentityConfig) -> IdGenerator:
        return cls(
            prefixes={
                EntityKind.ROW: config.row_prefix,
                EntityKind.COLUMN: config.column_prefix,
                EntityKind.GRID: config.grid_prefix,
            },
            start=config.start,
        )

    def generate_id(self, kind: EntityKind, taken: Container[str] = ()) -> str:
        """
        生成新ID

        Args:
            kind: 实体种类
            taken: 已占用的ID集合（通常是目标轴），命中则继续递增

        Returns:
            未被占用且从未发放过的ID
        """
        prefix = self.prefixes[kind]
        counter = self._counters[kind]
        while True:
            candidate = f"{prefix}{next(counter)}"
            if candidate not in taken:
                return candidate


def validate_id(proposed: object, axis: Container[str]) -> str:
    """校验用户给出的ID，重复时抛出 DuplicateIdError"""
    if not isinstance(proposed, str) or not proposed:
        raise DefinitionError(f"无效的ID: {proposed!r}")
    if proposed in axis:
        raise DuplicateIdError(f"ID已存在: \"{proposed}\"")
    return proposed
