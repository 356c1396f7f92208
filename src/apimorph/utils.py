"""工具函数模块

提供动态导入、日志安全输出等实用功能
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

from apimorph.constants import LOG_REPR_MAX_LENGTH
from apimorph.exceptions import MorphConfigurationError


def import_string(dotted_path: str) -> Any:
    """
    根据点分路径导入对象

    参数:
        dotted_path: 对象的完整路径（module.ClassName）

    返回:
        导入的对象

    异常:
        MorphConfigurationError: 路径格式错误、模块不存在或属性不存在时抛出

    示例:
        >>> import_string("apimorph.formatter.JSONFormatter")
        <class 'apimorph.formatter.JSONFormatter'>
    """
    try:
        module_name, attr_name = dotted_path.rsplit(".", 1)
    except (ValueError, AttributeError) as e:
        raise MorphConfigurationError(f"{dotted_path!r} is not a valid dotted path") from e

    try:
        module = import_module(module_name)
    except ImportError as e:
        raise MorphConfigurationError(f"Could not import module {module_name!r}: {e}") from e

    try:
        return getattr(module, attr_name)
    except AttributeError as e:
        raise MorphConfigurationError(f"Module {module_name!r} has no attribute {attr_name!r}") from e


def safe_repr(value: Any, max_length: int = LOG_REPR_MAX_LENGTH) -> str:
    """
    生成用于日志输出的截断 repr

    参数:
        value: 任意值
        max_length: 最大长度，超出部分以 "..." 代替

    返回:
        截断后的字符串

    示例:
        >>> safe_repr("x" * 10, max_length=5)
        "'xxxx..."
    """
    try:
        text = repr(value)
    except Exception:  # noqa: BLE001
        text = f"<unrepresentable {type(value).__name__}>"
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


def type_name(value: Any) -> str:
    """返回值的类型名称，用于日志和异常信息"""
    return type(value).__name__
