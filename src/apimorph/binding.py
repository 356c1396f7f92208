"""
转换绑定模块

Binding 把响应内容与其转换规则、规则参数、转换后回调以及元数据关联在一起，
由持有它的响应独占
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any


class Binding:
    """
    转换绑定

    参数:
        resource: 被绑定的原始内容
        transformer: 转换规则，None 表示使用解析器中注册的规则
        parameters: 传递给转换规则的参数
        callback: 转换完成后调用的回调 callback(transformed, binding)
        meta: 初始元数据

    属性:
        meta: 有序元数据字典，键唯一，保持插入顺序
    """

    def __init__(
        self,
        resource: Any = None,
        transformer: Any = None,
        parameters: Mapping[str, Any] | None = None,
        callback: Callable[[Any, Binding], Any] | None = None,
        meta: Mapping[str, Any] | None = None,
    ):
        self.resource = resource
        self.transformer = transformer
        self.parameters = dict(parameters or {})
        self.callback = callback
        self.meta: dict[str, Any] = dict(meta or {})

    def add_meta(self, key: str, value: Any) -> Binding:
        """添加一个元数据键值对，已存在的键会被覆盖但保留原位置"""
        self.meta[key] = value
        return self

    def set_meta(self, meta: Mapping[str, Any]) -> Binding:
        """整体替换元数据"""
        self.meta = dict(meta)
        return self

    def get_meta(self) -> dict[str, Any]:
        return dict(self.meta)

    def get_parameters(self) -> dict[str, Any]:
        return dict(self.parameters)

    def fire_callback(self, transformed: Any) -> None:
        """转换完成后触发回调（如果设置了回调）"""
        if self.callback is not None:
            self.callback(transformed, self)

    def __repr__(self) -> str:
        return f"<Binding transformer={self.transformer!r} meta_keys={list(self.meta)}>"
