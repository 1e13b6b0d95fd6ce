"""
默认渲染器 - 不接任何展示层时使用

- NullRenderer: 不生成句柄，可见性切换立即回调 on_complete
- SnapshotHandle: 反序列化"opaque"单元格时的默认外部内容（按快照比较相等）
"""

from __future__ import annotations

from typing import Any, Callable

from ..interfaces import IRenderer


class SnapshotHandle:
    """只保存快照的外部内容"""

    def __init__(self, snapshot: str):
        self._snapshot = snapshot

    def snapshot(self) -> str:
        return self._snapshot

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SnapshotHandle):
            return NotImplemented
        return self._snapshot == other._snapshot

    def __hash__(self) -> int:
        return hash(self._snapshot)

    def __repr__(self) -> str:
        return f"SnapshotHandle({self._snapshot!r})"


class NullRenderer(IRenderer):
    """空渲染器"""

    def materialize(self, entity: Any) -> None:
        return None

    def teardown(self, handle: Any) -> None:
        pass

    def set_visible(
        self,
        handle: Any,
        visible: bool,
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        if on_complete is not None:
            on_complete()

    def restore_handle(self, snapshot: str) -> SnapshotHandle:
        return SnapshotHandle(snapshot)
