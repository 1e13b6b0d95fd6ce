"""
位置描述 - 插入/移动时的目标位置

支持的输入（parse_position）：
- None                      末尾
- int                       绝对下标；负数从末尾计（-1 = 最后），越界时夹到边界
- "first" / "top"           开头
- "last" / "bottom"         末尾
- "up" / "left"             相对参照实体 -1
- "down" / "right"          相对参照实体 +1
- "+n" / "-n"               相对参照实体 ±n
- 行/列对象                 紧跟在该实体之后
- Absolute/First/Last/RelativeTo/After  显式变体

所有输入先解析成封闭变体，再由 resolve_index 计算出唯一的插入下标。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from ..interfaces import InvalidPositionError

if TYPE_CHECKING:
    from ..core.axis import AxisEntity

    Reference = Union[str, AxisEntity]


@dataclass(frozen=True)
class Absolute:
    """绝对下标"""
    index: int


@dataclass(frozen=True)
class First:
    """开头"""


@dataclass(frozen=True)
class Last:
    """末尾"""


@dataclass(frozen=True)
class RelativeTo:
    """相对参照实体偏移（reference 为 None 时以被移动的实体自身为参照）"""
    reference: Optional[Reference]
    offset: int


@dataclass(frozen=True)
class After:
    """紧跟在参照实体之后"""
    reference: Reference


Position = Union[Absolute, First, Last, RelativeTo, After]

FIRST = First()
LAST = Last()

_KEYWORDS: dict[str, Position] = {
    "first": FIRST,
    "top": FIRST,
    "last": LAST,
    "bottom": LAST,
    "up": RelativeTo(None, -1),
    "left": RelativeTo(None, -1),
    "down": RelativeTo(None, 1),
    "right": RelativeTo(None, 1),
}

_OFFSET_RE = re.compile(r"^[+-]\d+$")


def parse_position(spec: Any) -> Position:
    """将用户输入转换为位置变体"""
    if spec is None:
        return LAST
    if isinstance(spec, (Absolute, First, Last, RelativeTo, After)):
        return spec
    if isinstance(spec, bool):
        raise InvalidPositionError(f"无效的位置: {spec!r}")
    if isinstance(spec, int):
        return Absolute(spec)
    if isinstance(spec, str):
        key = spec.strip().lower()
        if key in _KEYWORDS:
            return _KEYWORDS[key]
        if _OFFSET_RE.match(key):
            return RelativeTo(None, int(key))
        raise InvalidPositionError(f"未知的位置关键字: {spec!r}")
    if hasattr(spec, "entity_id"):
        return After(spec)
    raise InvalidPositionError(f"无效的位置: {spec!r}")


def resolve_index(
    position: Position,
    *,
    size: int,
    index_of: Callable[[Reference], Optional[int]],
    current: int | None = None,
) -> int:
    """
    计算插入下标（纯函数）

    Args:
        position: 位置变体
        size: 插入前的元素个数（移动时不含被移动的实体）
        index_of: 参照实体 -> 下标（不存在返回None）
        current: 被移动实体原来的下标（插入时为None）

    Returns:
        0..size 之间的插入下标
    """
    if isinstance(position, First):
        return 0
    if isinstance(position, Last):
        return size
    if isinstance(position, Absolute):
        index = position.index
        if index < 0:
            # -k 对应 size + 1 - k
            index = size + 1 + index
        return _clamp(index, size)

    if isinstance(position, RelativeTo):
        if position.reference is None:
            if current is None:
                raise InvalidPositionError("相对位置缺少参照实体")
            base = current
        else:
            base = _lookup(position.reference, index_of)
        return _clamp(base + position.offset, size)

    if isinstance(position, After):
        return _clamp(_lookup(position.reference, index_of) + 1, size)

    raise InvalidPositionError(f"无效的位置: {position!r}")


def _lookup(reference: Reference, index_of: Callable[[Reference], Optional[int]]) -> int:
    index = index_of(reference)
    if index is None:
        name = getattr(reference, "entity_id", reference)
        raise InvalidPositionError(f"参照实体不存在: {name!r}")
    return index


def _clamp(index: int, size: int) -> int:
    return max(0, min(size, index))
