"""
转换器模块

提供转换规则（把领域对象重塑为公开 API 表示）和转换解析器

    - BaseTransformerResolver: 响应管道依赖的解析器接口
    - TransformerFactory: 基于"记录类型 -> 转换规则"注册表的解析器实现
    - BaseTransformer / CallableTransformer / SerializerTransformer: 转换规则

使用示例:
    >>> class UserSerializer(serializers.Serializer):
    ...     name = serializers.CharField()
    >>>
    >>> factory = TransformerFactory()
    >>> binding = factory.register(User, UserSerializer)
    >>> response = ApiResponse(User("a"), binding=binding, transformer=factory)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any

from rest_framework import serializers

from apimorph.binding import Binding
from apimorph.exceptions import MorphConfigurationError, TransformationError
from apimorph.records import (
    COLLECTION_TYPES,
    Arrayable,
    ResourceCollection,
    ResourceItem,
    collection_key_of,
    collection_resource_key,
    resource_key_of,
)
from apimorph.utils import safe_repr, type_name

logger = logging.getLogger(__name__)


class BaseTransformer(ABC):
    """
    转换规则基类

    子类需要实现 transform 方法，返回记录的公开表示（映射）
    """

    @abstractmethod
    def transform(self, record: Any, binding: Binding) -> Mapping[str, Any]:
        """
        转换单条记录

        参数:
            record: 原始记录
            binding: 当前响应的绑定，可以向其写入元数据

        返回:
            记录的公开表示
        """

    def transform_related(self, value: Any, transformer: Any, binding: Binding) -> Any:
        """
        转换关联实体（嵌套转换）

        参数:
            value: 关联的单条记录或记录集合，None 原样返回
            transformer: 关联实体的转换规则
            binding: 当前响应的绑定

        返回:
            单条记录返回映射，集合返回映射列表
        """
        if value is None:
            return None
        rule = as_transformer(transformer)
        if isinstance(value, COLLECTION_TYPES):
            return [dict(rule.transform(item, binding)) for item in value]
        return dict(rule.transform(value, binding))


class CallableTransformer(BaseTransformer):
    """
    可调用对象转换规则

    参数:
        func: 接收记录并返回映射的函数
    """

    def __init__(self, func: Callable[[Any], Mapping[str, Any]]):
        self.func = func

    def transform(self, record: Any, binding: Binding) -> Mapping[str, Any]:
        return self.func(record)

    def __repr__(self) -> str:
        return f"<CallableTransformer func={getattr(self.func, '__name__', self.func)!r}>"


class SerializerTransformer(BaseTransformer):
    """
    DRF Serializer 转换规则

    使用 serializer_class(record, context=...).data 生成公开表示，
    context 中包含绑定参数以及 binding 本身

    参数:
        serializer_class: DRF Serializer 类
        context: 额外的序列化上下文
    """

    def __init__(self, serializer_class: type[serializers.BaseSerializer], context: Mapping[str, Any] | None = None):
        if not (isinstance(serializer_class, type) and issubclass(serializer_class, serializers.BaseSerializer)):
            raise MorphConfigurationError(
                f"serializer_class must be a DRF Serializer class, got {type_name(serializer_class)}"
            )
        self.serializer_class = serializer_class
        self.context = dict(context or {})

    def transform(self, record: Any, binding: Binding) -> Mapping[str, Any]:
        context = {**self.context, **binding.get_parameters(), "binding": binding}
        serializer = self.serializer_class(record, context=context)
        return serializer.data

    def __repr__(self) -> str:
        return f"<SerializerTransformer serializer={self.serializer_class.__name__}>"


def as_transformer(rule: Any) -> BaseTransformer:
    """
    统一的转换规则解析方法

    接受 BaseTransformer 实例或子类、DRF Serializer 类、普通可调用对象

    异常:
        MorphConfigurationError: 无法识别的规则类型
    """
    if isinstance(rule, BaseTransformer):
        return rule
    if isinstance(rule, type):
        if issubclass(rule, BaseTransformer):
            return rule()
        if issubclass(rule, serializers.BaseSerializer):
            return SerializerTransformer(rule)
        raise MorphConfigurationError(f"Unsupported transformer class: {rule.__name__}")
    if callable(rule):
        return CallableTransformer(rule)
    raise MorphConfigurationError(f"Unsupported transformer: {rule!r}")


class BaseTransformerResolver(ABC):
    """响应管道依赖的转换解析器接口"""

    @abstractmethod
    def is_transformable(self, value: Any) -> bool:
        """判断值的类型是否注册了转换规则"""

    @abstractmethod
    def transform(self, value: Any, binding: Binding) -> Any:
        """应用转换规则，可以向 binding 合并元数据"""


class TransformerFactory(BaseTransformerResolver):
    """
    转换解析器

    按记录类型（沿 MRO 查找）注册转换规则；记录集合按第一条记录的类型判断
    """

    def __init__(self):
        self._rules: dict[type, BaseTransformer] = {}

    def register(
        self,
        record_class: type,
        transformer: Any,
        parameters: Mapping[str, Any] | None = None,
        callback: Callable[[Any, Binding], Any] | None = None,
    ) -> Binding:
        """
        为记录类型注册转换规则

        参数:
            record_class: 记录类型
            transformer: 转换规则（BaseTransformer、DRF Serializer 类或可调用对象）
            parameters: 规则参数
            callback: 转换完成后的回调

        返回:
            新的 Binding，调用方将其交给响应
        """
        if not isinstance(record_class, type):
            raise MorphConfigurationError(f"record_class must be a class, got {record_class!r}")
        rule = as_transformer(transformer)
        self._rules[record_class] = rule
        logger.info(f"Registered transformer {rule!r} for {record_class.__name__}")
        return Binding(transformer=rule, parameters=parameters, callback=callback)

    def get_transformer(self, value_type: type) -> BaseTransformer | None:
        """沿 MRO 查找类型的转换规则"""
        for klass in value_type.__mro__:
            rule = self._rules.get(klass)
            if rule is not None:
                return rule
        return None

    def is_transformable(self, value: Any) -> bool:
        if isinstance(value, COLLECTION_TYPES):
            first = next(iter(value), None)
            return first is not None and self.get_transformer(type(first)) is not None
        return value is not None and self.get_transformer(type(value)) is not None

    def transform(self, value: Any, binding: Binding) -> Any:
        """
        转换单条记录或记录集合

        参数:
            value: 单条记录或记录集合
            binding: 当前响应的绑定

        返回:
            ResourceItem 或 ResourceCollection，携带转换完成时的元数据快照

        异常:
            TransformationError: 没有可用的规则、规则失败或规则返回值无法表示为映射
        """
        if isinstance(value, COLLECTION_TYPES):
            items = [self._transform_item(item, binding) for item in value]
            result = ResourceCollection(items, resource_key=collection_resource_key(value), source=value)
            logger.debug(f"Transformed collection of {len(items)} items under key {result.resource_key!r}")
        else:
            result = self._transform_item(value, binding)
            logger.debug(f"Transformed {type_name(value)} under key {result.get_resource_key()!r}")

        binding.fire_callback(result)
        result.meta = binding.get_meta()
        return result

    def _transform_item(self, item: Any, binding: Binding) -> ResourceItem:
        rule = as_transformer(binding.transformer) if binding.transformer is not None else None
        if rule is None:
            rule = self.get_transformer(type(item))
        if rule is None:
            raise TransformationError(f"No transformer registered for {type_name(item)}", value=item)

        try:
            data = rule.transform(item, binding)
        except TransformationError:
            raise
        except Exception as e:
            logger.error(f"Transformer {rule!r} failed for {safe_repr(item)}: {e}")
            raise TransformationError(
                f"Transformer {rule!r} failed for {type_name(item)}: {e}", value=item, transformer=rule
            ) from e

        if isinstance(data, Arrayable) and not isinstance(data, Mapping):
            data = data.to_dict()
        if not isinstance(data, Mapping):
            raise TransformationError(
                f"Transformer {rule!r} returned {type_name(data)}, expected a mapping", value=item, transformer=rule
            )
        return ResourceItem(
            data,
            resource_key=resource_key_of(item),
            collection_key=collection_key_of(item),
            source=item,
        )
