"""
模块接口契约 - 定义核心与渲染层之间的抽象接口

设计原则：
1. 核心只通过这些接口与渲染层通信，不直接依赖DOM/动画实现
2. 渲染层回调由核心统一包裹，回调异常只记录日志，不破坏表格结构
3. 便于单元测试和mock替换

使用方式：
    from tablify.interfaces import IRenderer

    class HtmlRenderer(IRenderer):
        def materialize(self, entity):
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from .core import Cell, Column, Row

    RenderTarget = Union[Row, Column, Cell]


# ============================================================================
# 外部内容接口
# ============================================================================

@runtime_checkable
class OpaqueHandle(Protocol):
    """外部渲染单元（核心只保存引用，不解释、不深拷贝）"""

    def snapshot(self) -> str:
        """返回可序列化的快照（例如元素的outerHTML）"""
        ...


# ============================================================================
# 渲染层接口
# ============================================================================

class IRenderer(ABC):
    """渲染器接口 - 把行/列/单元格落到具体的展示层"""

    @abstractmethod
    def materialize(self, entity: RenderTarget) -> Any:
        """
        为新挂载的实体生成渲染句柄（每个实体只调用一次）

        Args:
            entity: 行、列或单元格

        Returns:
            渲染层自定义的句柄，核心原样保存在 entity.render_handle
        """
        ...

    @abstractmethod
    def teardown(self, handle: Any) -> None:
        """释放渲染句柄（实体被移除时调用）"""
        ...

    @abstractmethod
    def set_visible(
        self,
        handle: Any,
        visible: bool,
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        """
        切换可见性

        Args:
            handle: materialize 返回的句柄
            visible: 目标可见性
            on_complete: 过渡结束后由渲染层调用（可以晚于本方法返回）
        """
        ...

    @abstractmethod
    def restore_handle(self, snapshot: str) -> OpaqueHandle:
        """
        根据快照重建外部内容（反序列化"opaque"单元格时调用）

        Args:
            snapshot: OpaqueHandle.snapshot() 的输出

        Returns:
            新的外部内容句柄
        """
        ...


# ============================================================================
# 结构事件接口
# ============================================================================

class IGridObserver(Protocol):
    """表格结构事件协议（每个回调都收到受影响的实体及其新位置）"""

    def on_row_added(self, row: Row, position: int) -> None: ...

    def on_row_removed(self, row: Row, position: int) -> None: ...

    def on_column_added(self, column: Column, position: int) -> None: ...

    def on_column_removed(self, column: Column, position: int) -> None: ...

    def on_reordered(self, entity: Row | Column, position: int) -> None: ...


class GridObserver:
    """空实现的观察者基类，子类只需覆盖关心的事件"""

    def on_row_added(self, row: Row, position: int) -> None:
        pass

    def on_row_removed(self, row: Row, position: int) -> None:
        pass

    def on_column_added(self, column: Column, position: int) -> None:
        pass

    def on_column_removed(self, column: Column, position: int) -> None:
        pass

    def on_reordered(self, entity: Row | Column, position: int) -> None:
        pass


# ============================================================================
# 异常定义
# ============================================================================

class TablifyError(Exception):
    """基础异常"""
    pass


class DuplicateIdError(TablifyError):
    """标识重复（同一轴上已存在相同ID）"""
    pass


class InvalidPositionError(TablifyError):
    """位置描述无效（引用不存在的实体、跨区段引用或未知关键字）"""
    pass


class UseAfterDestroyError(TablifyError):
    """对已销毁的表格/行/列进行操作"""
    pass


class DefinitionError(TablifyError):
    """无法识别的定义或描述"""
    pass
