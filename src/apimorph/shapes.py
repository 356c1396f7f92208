"""
输入形态分类模块

将（可能已转换的）原始内容归类为且仅归类为一种输入形态，
分类顺序即分派优先级：单条记录 > 记录集合 > 通用结构 > 纯字符串 > 不透明对象
"""

from __future__ import annotations

import decimal
import enum
from collections.abc import Mapping, Sequence
from typing import Any

from django.db.models import Model

from apimorph.records import COLLECTION_TYPES, Arrayable, Record, RecordCollection


class InputShape(enum.IntEnum):
    """输入形态标签，数值越小优先级越高"""

    RECORD = 1
    COLLECTION = 2
    STRUCTURED = 3
    STRING = 4
    OPAQUE = 5


# 文本类值，不作为通用序列处理
TEXT_TYPES = (str, bytes, bytearray)

# 标量值，作为响应体时转换为文本
SCALAR_TYPES = (bool, int, float, decimal.Decimal)


def scalar_to_text(value: Any) -> str:
    """
    把标量转换为响应体文本

    示例:
        >>> scalar_to_text(True)
        'true'
        >>> scalar_to_text(decimal.Decimal("1.50"))
        '1.50'
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ShapeClassifier:
    """
    输入形态分类器

    参数:
        record_types: 视为单条记录的类型元组
        collection_types: 视为记录集合的类型元组

    使用示例:
        >>> classifier = ShapeClassifier(record_types=(Record, MyOrmModel))
        >>> classifier.classify(MyOrmModel())
        <InputShape.RECORD: 1>
    """

    def __init__(
        self,
        record_types: tuple[type, ...] = (Record,),
        collection_types: tuple[type, ...] = (RecordCollection,),
    ):
        self.record_types = tuple(record_types)
        self.collection_types = tuple(collection_types)

    def is_record(self, value: Any) -> bool:
        return isinstance(value, self.record_types)

    def is_collection(self, value: Any) -> bool:
        return isinstance(value, self.collection_types)

    @staticmethod
    def is_structured(value: Any) -> bool:
        if isinstance(value, TEXT_TYPES):
            return False
        return isinstance(value, (Mapping, Sequence)) or isinstance(value, Arrayable)

    @staticmethod
    def is_string(value: Any) -> bool:
        return isinstance(value, TEXT_TYPES)

    def classify(self, value: Any) -> InputShape:
        """
        按优先级返回第一个匹配的形态

        参数:
            value: 待分类的值

        返回:
            InputShape 标签，None 及无法识别的对象归为 OPAQUE
        """
        checks = (
            (InputShape.RECORD, self.is_record),
            (InputShape.COLLECTION, self.is_collection),
            (InputShape.STRUCTURED, self.is_structured),
            (InputShape.STRING, self.is_string),
        )
        for shape, check in checks:
            if check(value):
                return shape
        return InputShape.OPAQUE


# Django 模型实例视为单条记录，QuerySet 视为记录集合
default_classifier = ShapeClassifier(
    record_types=(Record, Model),
    collection_types=COLLECTION_TYPES,
)


def classify_shape(value: Any) -> InputShape:
    """使用默认分类器对值进行分类"""
    return default_classifier.classify(value)
