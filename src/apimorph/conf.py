"""
配置加载模块

合并顺序：默认配置 -> Django settings.APIMORPH（已配置 Django 时）-> 调用方传入的覆盖项，
后者覆盖前者

配置方式:
    APIMORPH = {
        "DEFAULT_FORMAT": "json",
        "FORMATS": {
            "json": "apimorph.formatter.JSONFormatter",
            "xml": "apimorph.formatter.XMLFormatter",
        },
        "FORMATS_OPTIONS": {
            "json": {"pretty_print": True, "indent_size": 4},
        },
    }
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any

from django.conf import settings as django_settings

from apimorph.constants import DEFAULT_SETTINGS, SETTINGS_NAMESPACE
from apimorph.exceptions import MorphConfigurationError
from apimorph.registry import FormatterRegistry
from apimorph.utils import import_string

logger = logging.getLogger(__name__)


def _merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """合并配置，FORMATS_OPTIONS 按格式合并，其他键整体覆盖"""
    for key, value in override.items():
        if key == "FORMATS_OPTIONS" and isinstance(value, Mapping):
            merged = base.setdefault(key, {})
            for format_id, options in value.items():
                merged[format_id] = {**merged.get(format_id, {}), **(options or {})}
        else:
            base[key] = copy.deepcopy(value)
    return base


def get_settings(overrides: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """
    返回合并后的配置字典

    参数:
        overrides: 覆盖项

    返回:
        新的配置字典（不修改默认配置）
    """
    result = copy.deepcopy(DEFAULT_SETTINGS)
    if django_settings.configured:
        project_settings = getattr(django_settings, SETTINGS_NAMESPACE, None) or {}
        if not isinstance(project_settings, Mapping):
            raise MorphConfigurationError(f"settings.{SETTINGS_NAMESPACE} must be a dict")
        _merge(result, project_settings)
    if overrides:
        _merge(result, overrides)
    return result


def build_registry(overrides: Mapping[str, Any] | None = None, freeze: bool = False) -> FormatterRegistry:
    """
    根据配置构建格式化器注册表

    参数:
        overrides: 覆盖项
        freeze: 构建完成后是否冻结注册表

    返回:
        FormatterRegistry 实例

    异常:
        MorphConfigurationError: 格式化器路径无法导入或不是有效的格式化器

    执行步骤:
        1. 合并配置，DEFAULT_FORMAT 作为注册表的默认格式
        2. 导入并注册 FORMATS 中的格式化器
        3. 设置 FORMATS_OPTIONS 中的选项
        4. 按需冻结
    """
    config = get_settings(overrides)
    registry = FormatterRegistry(default_format=config.get("DEFAULT_FORMAT"))

    for format_id, formatter in (config.get("FORMATS") or {}).items():
        if isinstance(formatter, str):
            formatter = import_string(formatter)
        registry.register(format_id, formatter)

    for format_id, options in (config.get("FORMATS_OPTIONS") or {}).items():
        registry.set_options(format_id, options)

    logger.info(f"Built formatter registry with formats: {registry.formats()}")
    if freeze:
        registry.freeze()
    return registry
