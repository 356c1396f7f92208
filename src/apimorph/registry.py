"""
格式化器注册表模块

提供进程级的格式化器目录：格式标识 -> 格式化器实例，以及每种格式的选项

注册表在进程启动时构建一次，之后以引用的方式注入到每个响应处理上下文中；
读取操作是普通的字典查找，可以被任意数量的并发请求安全共享。
写操作不加锁，应在开始处理请求之前完成，调用 freeze() 后任何修改都会被拒绝

使用示例:
    >>> registry = FormatterRegistry()
    >>> registry.register("json", JSONFormatter(), {"pretty_print": True})
    >>> registry.freeze()
    >>> registry.get("json")
    <JSONFormatter format='json'>
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from apimorph.exceptions import (
    MorphConfigurationError,
    RegistryFrozenError,
    UnsupportedFormat,
)
from apimorph.formatter import BaseFormatter

logger = logging.getLogger(__name__)


class FormatterRegistry:
    """
    格式化器目录

    参数:
        formatters: 初始的格式标识 -> 格式化器（类或实例）映射
        formats_options: 初始的格式标识 -> 选项映射
        default_format: 响应未指定格式时使用的格式标识，None 表示由响应自行决定
    """

    def __init__(
        self,
        formatters: Mapping[str, BaseFormatter | type[BaseFormatter]] | None = None,
        formats_options: Mapping[str, Mapping[str, Any]] | None = None,
        default_format: str | None = None,
    ):
        self._formatters: dict[str, BaseFormatter] = {}
        self._default_format = default_format
        self._formats_options: dict[str, dict[str, Any]] = {}
        self._frozen = False

        for format_id, formatter in (formatters or {}).items():
            self.register(format_id, formatter)
        for format_id, options in (formats_options or {}).items():
            self.set_options(format_id, options)

    # ========== 查询接口 ==========

    def has(self, format_id: str) -> bool:
        """判断格式是否已注册格式化器"""
        return format_id in self._formatters

    def get(self, format_id: str) -> BaseFormatter:
        """
        获取格式对应的格式化器

        参数:
            format_id: 格式标识

        返回:
            已注册的格式化器实例

        异常:
            UnsupportedFormat: 格式未注册时抛出
        """
        try:
            return self._formatters[format_id]
        except KeyError:
            logger.error(f"No formatter registered for format {format_id!r}, available: {self.formats()}")
            raise UnsupportedFormat("Unable to format response according to Accept header.", format=format_id) from None

    def options_for(self, format_id: str) -> dict[str, Any]:
        """返回格式选项的副本，未设置时返回空字典"""
        return dict(self._formats_options.get(format_id, {}))

    def has_options(self, format_id: str) -> bool:
        return format_id in self._formats_options

    def formats(self) -> list[str]:
        """按注册顺序返回所有格式标识"""
        return list(self._formatters)

    @property
    def default_format(self) -> str | None:
        return self._default_format

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, format_id: str) -> bool:
        return self.has(format_id)

    def __len__(self) -> int:
        return len(self._formatters)

    def __repr__(self) -> str:
        return f"<FormatterRegistry formats={self.formats()} frozen={self._frozen}>"

    # ========== 注册接口 ==========

    def register(
        self,
        format_id: str,
        formatter: BaseFormatter | type[BaseFormatter],
        options: Mapping[str, Any] | None = None,
    ) -> BaseFormatter:
        """
        注册格式化器，重复注册时后者覆盖前者

        参数:
            format_id: 格式标识
            formatter: 格式化器类或实例，类会以无参方式实例化
            options: 格式选项，None 时保留已有选项

        返回:
            注册的格式化器实例

        异常:
            RegistryFrozenError: 注册表已冻结时抛出
            MorphConfigurationError: 格式标识或格式化器无效时抛出
        """
        self._check_mutable()
        if not format_id or not isinstance(format_id, str):
            raise MorphConfigurationError(f"Format id must be a non-empty string, got {format_id!r}")

        instance = self._resolve_formatter(formatter)
        self._formatters[format_id] = instance
        if options is not None:
            self._formats_options[format_id] = dict(options)

        logger.info(f"Registered formatter {type(instance).__name__} for format {format_id!r}")
        return instance

    def unregister(self, format_id: str) -> None:
        """移除格式化器及其选项，格式未注册时不做任何操作"""
        self._check_mutable()
        self._formatters.pop(format_id, None)
        self._formats_options.pop(format_id, None)
        logger.info(f"Unregistered format {format_id!r}")

    def set_options(self, format_id: str, options: Mapping[str, Any]) -> None:
        """设置格式选项，后设置的值生效"""
        self._check_mutable()
        self._formats_options[format_id] = dict(options or {})
        logger.debug(f"Set options for format {format_id!r}: {self._formats_options[format_id]}")

    def set_formatters(self, formatters: Mapping[str, BaseFormatter | type[BaseFormatter]]) -> None:
        """整体替换所有格式化器"""
        self._check_mutable()
        resolved = {format_id: self._resolve_formatter(formatter) for format_id, formatter in formatters.items()}
        self._formatters = resolved
        logger.info(f"Replaced formatters: {self.formats()}")

    def set_formats_options(self, formats_options: Mapping[str, Mapping[str, Any]]) -> None:
        """整体替换所有格式选项"""
        self._check_mutable()
        self._formats_options = {format_id: dict(options or {}) for format_id, options in formats_options.items()}

    def set_default_format(self, format_id: str | None) -> None:
        """设置默认格式，None 表示清除"""
        self._check_mutable()
        self._default_format = format_id
        logger.debug(f"Set default format: {format_id!r}")

    def freeze(self) -> FormatterRegistry:
        """冻结注册表，之后的任何修改都会抛出 RegistryFrozenError"""
        self._frozen = True
        logger.info(f"Formatter registry frozen with formats: {self.formats()}")
        return self

    # ========== 内部方法 ==========

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError("Formatter registry is frozen and can no longer be modified")

    @staticmethod
    def _resolve_formatter(formatter: BaseFormatter | type[BaseFormatter]) -> BaseFormatter:
        """
        统一的格式化器解析方法，接受类或实例

        异常:
            MorphConfigurationError: 既不是 BaseFormatter 子类也不是实例，或实例化失败
        """
        if isinstance(formatter, BaseFormatter):
            return formatter
        if isinstance(formatter, type) and issubclass(formatter, BaseFormatter):
            try:
                return formatter()
            except Exception as e:
                logger.error(f"Failed to instantiate {formatter.__name__}: {e}")
                raise MorphConfigurationError(f"{formatter.__name__} instantiation failed: {e}") from e
        raise MorphConfigurationError(f"formatter must be a BaseFormatter subclass or instance, got {formatter!r}")
