"""
响应变形异常模块

定义格式协商、转换、序列化过程中的所有异常类，提供统一的错误处理机制
"""

from __future__ import annotations

from typing import Any

from apimorph.constants import STATUS_NOT_ACCEPTABLE


class MorphError(Exception):
    """
    响应变形异常基类

    所有自定义异常的基类，用于统一捕获和处理响应变形相关错误
    """


class UnsupportedFormat(MorphError):
    """
    不支持的响应格式异常

    当请求的格式没有注册对应的格式化器时抛出此异常，
    传输层应将其映射为 406 Not Acceptable

    参数:
        message: 错误描述信息
        format: 请求的格式标识（可选）

    属性:
        format: 请求的格式标识
        status_code: 建议的 HTTP 状态码（406）
    """

    status_code = STATUS_NOT_ACCEPTABLE

    def __init__(self, message: str, format: str | None = None):
        super().__init__(message)
        self.format = format


class SerializationError(MorphError):
    """
    序列化异常

    当格式化器无法用其格式表示给定的值时抛出此异常，
    例如文本格式中出现非 UTF-8 字节

    参数:
        message: 错误描述信息
        format: 格式化器的格式标识（可选）
        value: 无法序列化的值（可选）
    """

    def __init__(self, message: str, format: str | None = None, value: Any = None):
        super().__init__(message)
        self.format = format
        self.value = value


class TransformationError(MorphError):
    """
    转换异常

    当转换规则在重塑领域对象时失败时抛出此异常

    参数:
        message: 错误描述信息
        value: 转换失败的值（可选）
        transformer: 执行转换的规则对象（可选）
    """

    def __init__(self, message: str, value: Any = None, transformer: Any = None):
        super().__init__(message)
        self.value = value
        self.transformer = transformer


class MorphConfigurationError(MorphError):
    """
    配置异常

    当格式化器注册参数、转换规则或配置项无效时抛出此异常
    """


class RegistryFrozenError(MorphConfigurationError):
    """
    注册表冻结异常

    当格式化器注册表已冻结（已开始处理请求）后仍尝试修改时抛出此异常
    """
