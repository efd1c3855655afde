"""
订单存储接口 - 定义核心访问外部订单记录所需的抽象接口

订单由宿主系统持有；核心只读写字段、调用 save() 并追加备注。
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from .entity import OrderNote


class OrderRecord(ABC):
    """订单记录抽象接口 - 只定义能做什么，不管怎么做"""

    @property
    @abstractmethod
    def id(self) -> str:
        """订单ID"""

    @abstractmethod
    def get(self, field: str, default: Any = None) -> Any:
        """读取字段当前值（包含尚未保存的修改）"""

    @abstractmethod
    def set(self, field: str, value: Any) -> "OrderRecord":
        """修改字段（不持久化），返回自身以支持链式调用"""

    @abstractmethod
    async def save(self) -> None:
        """持久化当前字段；重复保存相同状态必须无副作用"""

    @abstractmethod
    async def add_note(self, text: str, reason: str = "") -> None:
        """追加一条只增不改的订单备注"""

    @property
    @abstractmethod
    def notes(self) -> Sequence[OrderNote]:
        """订单备注历史"""


class OrderRepository(ABC):
    """订单仓储抽象接口"""

    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[OrderRecord]:
        """根据ID获取订单"""

    @abstractmethod
    async def add(self, order: OrderRecord) -> OrderRecord:
        """登记订单"""
