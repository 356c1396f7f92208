"""
记录类型标签模块

定义响应内容的两个领域类型标签：单条记录（Record）与记录集合（RecordCollection），
以及转换后的承载对象 ResourceItem / ResourceCollection

ORM 类可以通过继承或 ``Record.register(cls)`` / ``RecordCollection.register(cls)``
加入对应的类型标签

使用示例:
    >>> class User(Record):
    ...     resource_key = "user"
    ...
    ...     def __init__(self, name):
    ...         self.name = name
    ...
    ...     def to_dict(self):
    ...         return {"name": self.name}
    >>>
    >>> users = RecordCollection([User("a"), User("b")])
    >>> users.resource_key
    'users'
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from django.db.models import Model, QuerySet
from django.forms.models import model_to_dict


# 集合为空且未显式指定键名时使用的包络键
DEFAULT_RESOURCE_KEY = "data"

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


@runtime_checkable
class Arrayable(Protocol):
    """具备"转换为数组"能力的对象，即提供 to_dict() 方法"""

    def to_dict(self) -> Any: ...


class Record(ABC):
    """
    单条记录基类

    类属性:
        resource_key: 单条记录在响应包络中的键名，为空时由类名推导（UserProfile -> user_profile）
        collection_key: 记录集合在响应包络中的键名，为空时为 resource_key + "s"
    """

    resource_key: str = ""
    collection_key: str = ""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """返回记录的字典表示"""

    def get_resource_key(self) -> str:
        return self.resource_key or _CAMEL_BOUNDARY.sub("_", type(self).__name__).lower()

    def get_collection_key(self) -> str:
        return self.collection_key or f"{self.get_resource_key()}s"


class RecordCollection(Sequence):
    """
    有序记录集合

    参数:
        items: 记录列表
        resource_key: 集合在响应包络中的键名，为空时取第一条记录的 collection_key
    """

    def __init__(self, items: Sequence[Any] | None = None, resource_key: str | None = None):
        self._items = list(items or [])
        self._resource_key = resource_key

    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} key={self.resource_key!r} size={len(self)}>"

    @property
    def resource_key(self) -> str:
        if self._resource_key:
            return self._resource_key
        if not self._items:
            return DEFAULT_RESOURCE_KEY
        return collection_key_of(self._items[0])

    def first(self) -> Any:
        """返回第一条记录，集合为空时返回 None"""
        return self._items[0] if self._items else None

    def to_list(self) -> list[Any]:
        return [record_data(item) for item in self._items]


class ResourceItem(Record):
    """
    转换后的单条记录

    保存转换规则输出的公开表示，并携带转换完成时绑定元数据的快照

    参数:
        data: 转换后的字典数据
        resource_key: 包络键名
        collection_key: 所在集合的包络键名
        meta: 元数据快照
        source: 转换前的原始记录
    """

    def __init__(
        self,
        data: Mapping[str, Any],
        resource_key: str = "",
        collection_key: str = "",
        meta: Mapping[str, Any] | None = None,
        source: Any = None,
    ):
        self.data = dict(data)
        self.resource_key = resource_key
        self.collection_key = collection_key
        self.meta = dict(meta or {})
        self.source = source

    def to_dict(self) -> dict[str, Any]:
        return dict(self.data)

    def __eq__(self, other):
        if not isinstance(other, ResourceItem):
            return NotImplemented
        return self.data == other.data and self.get_resource_key() == other.get_resource_key()

    def __repr__(self) -> str:
        return f"<ResourceItem key={self.get_resource_key()!r} data={self.data!r}>"


class ResourceCollection(RecordCollection):
    """
    转换后的记录集合

    参数:
        items: ResourceItem 列表
        resource_key: 包络键名
        meta: 元数据快照
        source: 转换前的原始集合
    """

    def __init__(
        self,
        items: Sequence[ResourceItem] | None = None,
        resource_key: str | None = None,
        meta: Mapping[str, Any] | None = None,
        source: Any = None,
    ):
        super().__init__(items, resource_key=resource_key)
        self.meta = dict(meta or {})
        self.source = source


# 按记录集合处理的类型
COLLECTION_TYPES = (RecordCollection, QuerySet)


def resource_key_of(record: Any) -> str:
    """返回单条记录的包络键名，兼容通过 register 注册的虚拟子类"""
    getter = getattr(record, "get_resource_key", None)
    if callable(getter):
        return getter()
    return getattr(record, "resource_key", "") or _CAMEL_BOUNDARY.sub("_", type(record).__name__).lower()


def collection_key_of(record: Any) -> str:
    """返回记录所在集合的包络键名"""
    getter = getattr(record, "get_collection_key", None)
    if callable(getter):
        return getter()
    return getattr(record, "collection_key", "") or f"{resource_key_of(record)}s"


def collection_resource_key(collection: Any) -> str:
    """返回集合的包络键名"""
    key = getattr(collection, "resource_key", None)
    if key:
        return key
    if isinstance(collection, QuerySet):
        # 按模型类推导，不需要先执行查询
        return f"{_CAMEL_BOUNDARY.sub('_', collection.model.__name__).lower()}s"
    for item in collection:
        return collection_key_of(item)
    return DEFAULT_RESOURCE_KEY


def record_data(record: Any) -> Any:
    """
    将记录转换为可序列化的字典

    优先使用 to_dict()，其次接受映射和 Django 模型实例，最后退化为实例的公开属性
    """
    if isinstance(record, Arrayable):
        return record.to_dict()
    if isinstance(record, Model):
        return model_to_dict(record)
    if isinstance(record, Mapping):
        return dict(record)
    if hasattr(record, "__dict__"):
        return {k: v for k, v in vars(record).items() if not k.startswith("_")}
    return record


def record_meta(value: Any) -> dict[str, Any]:
    """返回转换后对象携带的元数据，未转换的对象返回空字典"""
    return dict(getattr(value, "meta", None) or {}) if isinstance(value, (ResourceItem, ResourceCollection)) else {}
