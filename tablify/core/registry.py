"""
表格登记表 - 记录当前存活的表格，可按ID查找

表格在构造时传入 registry 即自动登记，destroy() 时自动注销。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Iterator

from ..interfaces import DuplicateIdError

if TYPE_CHECKING:
    from .grid import Grid

logger = logging.getLogger(__name__)


class GridRegistry:
    """表格登记表"""

    def __init__(self):
        self._grids: list[Grid] = []
        # 回调
        self.on_registered: Callable[[Grid], None] | None = None
        self.on_unregistered: Callable[[Grid], None] | None = None

    def register(self, grid: Grid) -> None:
        if self.get(grid.grid_id) is not None:
            raise DuplicateIdError(f"表格ID已登记: \"{grid.grid_id}\"")
        self._grids.append(grid)
        logger.debug(f"登记表格 \"{grid.grid_id}\"")
        if self.on_registered is not None:
            self.on_registered(grid)

    def unregister(self, grid: Grid) -> bool:
        for i, registered in enumerate(self._grids):
            if registered is grid:
                del self._grids[i]
                logger.debug(f"注销表格 \"{grid.grid_id}\"")
                if self.on_unregistered is not None:
                    self.on_unregistered(grid)
                return True
        logger.error(f"注销失败，表格未登记: \"{grid.grid_id}\"")
        return False

    def get(self, grid_id: str) -> Grid | None:
        for grid in self._grids:
            if grid.grid_id == grid_id:
                return grid
        return None

    def __iter__(self) -> Iterator[Grid]:
        return iter(list(self._grids))

    def __len__(self) -> int:
        return len(self._grids)

    def __contains__(self, grid: object) -> bool:
        return any(registered is grid for registered in self._grids)
