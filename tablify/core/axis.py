"""
有序轴 - 行轴/列轴共用的有序实体集合

职责：
1. 维护 ID->实体 映射与有序序列（顺序以序列为准）
2. 维护派生的 position/prev/next（每次变更后与序列一致）
3. 插入/删除/移动/部分重排/稳定排序
4. 可选 bounds=(lo, hi) 把操作限制在连续子区间内（行轴的表头/表体/表尾区段）

不变量：
    seq[i].position == i
    seq[i].prev is seq[i-1]（i=0 时为None）
    seq[i].next is seq[i+1]（末尾为None）

测试要点：
- test_insert_positions: 数字/关键字/相对位置
- test_partial_reorder: 部分重排
- test_stable_sort: 稳定排序
- test_random_operations_keep_invariants: 随机操作后不变量成立
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import Any, Callable, Generic, Iterable, Iterator, TypeVar

from ..interfaces import InvalidPositionError, UseAfterDestroyError
from ..models.position import After, RelativeTo, parse_position, resolve_index
from .identity import EntityKind, validate_id


class AxisEntity:
    """轴成员基类（行/列共用的身份、位置与邻接字段）"""

    kind: EntityKind

    def __init__(self, entity_id: str, grid: Any):
        self._id = entity_id
        self._grid = grid
        self._position: int | None = None
        self._prev: AxisEntity | None = None
        self._next: AxisEntity | None = None
        self._destroyed = False
        self.visible = True
        self.render_handle: Any = None

    @property
    def entity_id(self) -> str:
        return self._id

    @property
    def position(self) -> int | None:
        """在所属轴中的下标（未挂载时为None）"""
        return self._position

    @property
    def prev(self) -> AxisEntity | None:
        return self._prev

    @property
    def next(self) -> AxisEntity | None:
        return self._next

    @property
    def grid(self) -> Any:
        self._ensure_alive()
        return self._grid

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def equals(self, other: object) -> bool:
        """同一表格且ID相同即视为同一实体（内容无关）；已销毁的实体只等于自身"""
        if other is self:
            return True
        return (
            isinstance(other, AxisEntity)
            and other.kind == self.kind
            and other._id == self._id
            and self._grid is not None
            and other._grid is self._grid
        )

    def __eq__(self, other: object) -> bool:
        return self.equals(other)

    def __hash__(self) -> int:
        return hash((self.kind, self._id))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._id!r}, position={self._position})"

    def _ensure_alive(self) -> None:
        if self._destroyed:
            raise UseAfterDestroyError(f"{type(self).__name__} \"{self._id}\" 已销毁")

    def _destroy(self) -> None:
        self._destroyed = True
        self._grid = None
        self.render_handle = None


E = TypeVar("E", bound=AxisEntity)


class OrderedAxis(Generic[E]):
    """有序轴（映射 + 序列 + 邻接指针，三者只在本类内部修改）"""

    def __init__(self, name: str):
        self.name = name
        self._entities: dict[str, E] = {}
        self._sequence: list[E] = []

    # === 查询 ===

    def __len__(self) -> int:
        return len(self._sequence)

    def __iter__(self) -> Iterator[E]:
        return iter(list(self._sequence))

    def __contains__(self, ref: object) -> bool:
        if isinstance(ref, str):
            return ref in self._entities
        return self.get(ref) is not None

    def ids(self) -> list[str]:
        return [e.entity_id for e in self._sequence]

    def entities(self, bounds: tuple[int, int] | None = None) -> list[E]:
        lo, hi = self._bounds(bounds)
        return self._sequence[lo:hi]

    def get(self, ref: Any) -> E | None:
        """按ID、下标或实体对象查找；找不到返回None"""
        if isinstance(ref, str):
            return self._entities.get(ref)
        if isinstance(ref, bool):
            return None
        if isinstance(ref, int):
            if 0 <= ref < len(self._sequence):
                return self._sequence[ref]
            return None
        if isinstance(ref, AxisEntity):
            found = self._entities.get(ref.entity_id)
            return found if found is ref else None
        return None

    def index_of(self, ref: Any) -> int | None:
        if isinstance(ref, int):
            return None
        entity = self.get(ref)
        return entity.position if entity is not None else None

    # === 变更 ===

    def resolve_insert(self, position: Any = None, *, bounds: tuple[int, int] | None = None) -> int:
        """计算插入下标（不修改状态）"""
        lo, hi = self._bounds(bounds)
        pos = parse_position(position)

        def local_index(reference: Any) -> int | None:
            entity = self._reference(reference)
            if entity is None or not lo <= entity.position < hi:
                return None
            return entity.position - lo

        return lo + resolve_index(pos, size=hi - lo, index_of=local_index)

    def insert_at(self, entity: E, index: int) -> None:
        """在已解析的下标处插入"""
        validate_id(entity.entity_id, self._entities)
        if not 0 <= index <= len(self._sequence):
            raise InvalidPositionError(f"插入下标越界: {index}")
        self._sequence.insert(index, entity)
        self._entities[entity.entity_id] = entity
        self._relink(max(index - 1, 0))

    def insert(self, entity: E, position: Any = None, *, bounds: tuple[int, int] | None = None) -> int:
        """
        插入实体

        Args:
            entity: 新实体（ID不得与轴上已有实体重复）
            position: 位置描述，见 models.position
            bounds: 可选子区间

        Returns:
            实体的新下标
        """
        validate_id(entity.entity_id, self._entities)
        index = self.resolve_insert(position, bounds=bounds)
        self.insert_at(entity, index)
        return index

    def remove(self, ref: Any) -> bool:
        """移除实体，找不到返回False"""
        entity = self.get(ref)
        if entity is None:
            return False
        index = entity.position
        del self._sequence[index]
        del self._entities[entity.entity_id]
        entity._position = None
        entity._prev = None
        entity._next = None
        self._relink(max(index - 1, 0))
        return True

    def move(self, ref: Any, position: Any, *, bounds: tuple[int, int] | None = None) -> bool:
        """
        移动实体（目标位置在修改前完全解析，失败时轴保持原状）

        Returns:
            找不到实体返回False
        """
        entity = self.get(ref)
        if entity is None:
            return False
        lo, hi = self._bounds(bounds)
        current = entity.position
        if not lo <= current < hi:
            raise InvalidPositionError(f"\"{entity.entity_id}\" 不在目标区段内")

        pos = parse_position(position)
        if isinstance(pos, After) and self._reference(pos.reference) is entity:
            pos = RelativeTo(None, 0)

        def local_index(reference: Any) -> int | None:
            other = self._reference(reference)
            if other is None or not lo <= other.position < hi:
                return None
            if other is entity:
                return current - lo
            index = other.position - lo
            return index - 1 if other.position > current else index

        target = lo + resolve_index(
            pos, size=hi - lo - 1, index_of=local_index, current=current - lo
        )
        if target == current:
            return True
        del self._sequence[current]
        self._sequence.insert(target, entity)
        self._relink(max(min(current, target) - 1, 0), max(current, target) + 2)
        return True

    def reorder(self, new_order: Iterable[Any], *, bounds: tuple[int, int] | None = None) -> list[E]:
        """
        部分重排：new_order 中出现且存在的实体按给定顺序排在前面，
        其余实体保持原相对顺序排在后面；不存在的ID忽略。

        Returns:
            位置发生变化的实体（按新顺序）
        """
        lo, hi = self._bounds(bounds)
        segment = self._sequence[lo:hi]
        members = {e.entity_id: e for e in segment}

        mentioned: list[E] = []
        for ref in new_order:
            ref_id = ref if isinstance(ref, str) else getattr(ref, "entity_id", None)
            entity = members.pop(ref_id, None) if ref_id is not None else None
            if entity is not None:
                mentioned.append(entity)
        rest = [e for e in segment if e.entity_id in members]
        return self._apply_segment(lo, hi, mentioned + rest)

    def sort(
        self,
        comparator: Callable[[E, E], bool] | None = None,
        *,
        key: Callable[[E], Any] | None = None,
        bounds: tuple[int, int] | None = None,
    ) -> list[E]:
        """
        稳定排序

        Args:
            comparator: 小于谓词 (a, b) -> bool；两向都为False视为相等，保持原顺序
            key: Python风格的排序键（与comparator二选一，都不给时按ID排序）

        Returns:
            位置发生变化的实体（按新顺序）
        """
        if comparator is not None and key is not None:
            raise TypeError("comparator 与 key 只能给一个")
        if comparator is not None:
            key = cmp_to_key(lambda a, b: -1 if comparator(a, b) else (1 if comparator(b, a) else 0))
        lo, hi = self._bounds(bounds)
        ordered = sorted(self._sequence[lo:hi], key=key or _entity_id)
        return self._apply_segment(lo, hi, ordered)

    def clear(self) -> list[E]:
        """清空轴，返回原有实体"""
        removed = list(self._sequence)
        for entity in removed:
            entity._position = None
            entity._prev = None
            entity._next = None
        self._sequence.clear()
        self._entities.clear()
        return removed

    # === 一致性 ===

    def validate_consistency(self) -> list[str]:
        """一致性校验，返回问题列表（空列表表示一致）"""
        problems = []
        if len(self._entities) != len(self._sequence):
            problems.append(f"{self.name}: 映射与序列长度不一致")
        for i, entity in enumerate(self._sequence):
            if self._entities.get(entity.entity_id) is not entity:
                problems.append(f"{self.name}[{i}]: 映射缺失 \"{entity.entity_id}\"")
            if entity.position != i:
                problems.append(f"{self.name}[{i}]: position={entity.position}")
            expected_prev = self._sequence[i - 1] if i > 0 else None
            expected_next = self._sequence[i + 1] if i + 1 < len(self._sequence) else None
            if entity.prev is not expected_prev:
                problems.append(f"{self.name}[{i}]: prev 不一致")
            if entity.next is not expected_next:
                problems.append(f"{self.name}[{i}]: next 不一致")
        return problems

    # === 内部 ===

    def _bounds(self, bounds: tuple[int, int] | None) -> tuple[int, int]:
        if bounds is None:
            return 0, len(self._sequence)
        lo, hi = bounds
        if not 0 <= lo <= hi <= len(self._sequence):
            raise ValueError(f"{self.name}: 无效区间 {bounds}")
        return lo, hi

    def _reference(self, reference: Any) -> E | None:
        if isinstance(reference, (str, AxisEntity)):
            return self.get(reference)
        return None

    def _apply_segment(self, lo: int, hi: int, new_segment: list[E]) -> list[E]:
        old_segment = self._sequence[lo:hi]
        self._sequence[lo:hi] = new_segment
        self._relink(max(lo - 1, 0), hi + 1)
        return [e for old, e in zip(old_segment, new_segment) if old is not e]

    def _relink(self, start: int = 0, stop: int | None = None) -> None:
        """重新派生 [start, stop) 内的 position/prev/next"""
        seq = self._sequence
        stop = len(seq) if stop is None else min(stop, len(seq))
        for i in range(start, stop):
            entity = seq[i]
            entity._position = i
            entity._prev = seq[i - 1] if i > 0 else None
            entity._next = seq[i + 1] if i + 1 < len(seq) else None


def _entity_id(entity: AxisEntity) -> str:
    return entity.entity_id
