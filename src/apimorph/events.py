"""
响应变形事件模块

提供变形前后两个事件以及一个进程内的同步事件分发器

监听器按注册顺序同步调用；监听器抛出的异常只记录日志，不会中断变形流程
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class ResponseEvent:
    """
    响应事件基类

    参数:
        response: 正在变形的响应
        content: 事件触发时的内容（监听器对其的修改不会被管道读回）
    """

    def __init__(self, response: Any, content: Any):
        self.response = response
        self.content = content

    def __repr__(self) -> str:
        return f"<{type(self).__name__} content_type={type(self.content).__name__}>"


class ResponseIsMorphing(ResponseEvent):
    """变形开始、尚未应用任何转换时触发"""


class ResponseWasMorphed(ResponseEvent):
    """转换和内容类型协商完成、序列化之前触发"""


class EventDispatcher:
    """
    同步事件分发器

    使用示例:
        >>> events = EventDispatcher()
        >>> events.listen(ResponseWasMorphed, lambda event: print(event.content))
        >>> events.dispatch(ResponseWasMorphed(response, {"a": 1}))
    """

    def __init__(self):
        self._listeners: list[tuple[type[ResponseEvent], Callable[[Any], Any]]] = []

    def listen(self, event_class: type, callback: Callable[[Any], Any]) -> None:
        """
        注册事件监听器

        参数:
            event_class: 监听的事件类型（子类事件同样会触发）
            callback: 回调函数 callback(event)

        异常:
            ValueError: callback 不可调用时抛出
        """
        if not callable(callback):
            raise ValueError(f"Listener for {event_class.__name__} must be callable, got {callback!r}")
        self._listeners.append((event_class, callback))
        logger.debug(f"Registered listener for {event_class.__name__}")

    def has_listeners(self, event_class: type) -> bool:
        return any(issubclass(event_class, listened) for listened, _ in self._listeners)

    def forget(self, event_class: type) -> None:
        """移除某类事件的全部监听器"""
        self._listeners = [(listened, cb) for listened, cb in self._listeners if listened is not event_class]

    def dispatch(self, event: Any) -> None:
        """按注册顺序同步调用所有匹配的监听器"""
        for event_class, callback in list(self._listeners):
            if not isinstance(event, event_class):
                continue
            try:
                callback(event)
            except Exception:
                logger.exception(f"Listener {callback!r} for {type(event).__name__} failed")
