"""
响应格式化器模块

提供格式化器的基类和 JSON、JSONP、XML 三种实现，用于把各种输入形态序列化为线上表示

格式化器是无状态的：每次调用都显式传入 options，同一实例可以在并发请求间安全共享
"""

from __future__ import annotations

import datetime
import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from io import StringIO
from typing import Any
from xml.sax.saxutils import XMLGenerator

from django.db.models import Model
from rest_framework.utils.encoders import JSONEncoder

from apimorph.constants import (
    CONTENT_TYPE_JAVASCRIPT,
    CONTENT_TYPE_JSON,
    CONTENT_TYPE_XML,
    DEFAULT_INDENT_SIZE,
    DEFAULT_XML_ITEM_TAG,
    DEFAULT_XML_ROOT_TAG,
    FORMAT_JSON,
    FORMAT_JSONP,
    FORMAT_XML,
    INDENT_STYLE_TAB,
    JSONP_BODY_PREFIX,
    META_ENVELOPE_KEY,
    OPTION_CALLBACK,
    OPTION_ENSURE_ASCII,
    OPTION_INDENT_SIZE,
    OPTION_INDENT_STYLE,
    OPTION_ITEM_TAG,
    OPTION_PRETTY_PRINT,
    OPTION_ROOT_TAG,
    OPTION_SORT_KEYS,
)
from apimorph.exceptions import SerializationError
from apimorph.records import (
    COLLECTION_TYPES,
    Arrayable,
    collection_resource_key,
    record_data,
    record_meta,
    resource_key_of,
)
from apimorph.utils import type_name

logger = logging.getLogger(__name__)

# JSONP 回调函数名：合法的 JavaScript 标识符，允许点号连接（如 jQuery.cb）
JSONP_CALLBACK_PATTERN = re.compile(r"^[A-Za-z_$][\w$]*(\.[A-Za-z_$][\w$]*)*$")

# XML 元素名称
XML_NAME_PATTERN = re.compile(r"^[A-Za-z_][\w.\-]*$")


class BaseFormatter(ABC):
    """
    响应格式化器基类，定义如何把每种输入形态序列化为一种线上格式

    类属性:
        format_id: 格式标识，用于异常信息和日志
        media_type: 默认的内容类型，为空表示不覆盖响应的 Content-Type
    """

    format_id: str = ""
    media_type: str = ""

    def content_type(self, options: Mapping[str, Any] | None = None) -> str:
        """
        返回本次调用应设置的内容类型

        参数:
            options: 当前格式的选项

        返回:
            内容类型字符串，空字符串表示不覆盖
        """
        return self.media_type

    @abstractmethod
    def format_record(self, record: Any, options: Mapping[str, Any] | None = None) -> str:
        """序列化单条记录"""

    @abstractmethod
    def format_collection(self, collection: Any, options: Mapping[str, Any] | None = None) -> str:
        """序列化记录集合"""

    @abstractmethod
    def format_structured(self, value: Any, options: Mapping[str, Any] | None = None) -> str:
        """序列化通用结构（映射、序列或具备 to_dict() 的对象）"""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} format={self.format_id!r}>"


class MorphJSONEncoder(JSONEncoder):
    """
    JSON 编码器

    在 DRF JSONEncoder（日期、Decimal、UUID、惰性字符串等）的基础上支持记录、集合和 Django 模型
    """

    def default(self, obj):
        if isinstance(obj, COLLECTION_TYPES):
            return [record_data(item) for item in obj]
        if isinstance(obj, (Arrayable, Model)):
            return record_data(obj)
        return super().default(obj)


class JSONFormatter(BaseFormatter):
    """
    JSON 格式化器

    单条记录输出 {resource_key: data}，集合输出 {collection_key: [data, ...]}，
    转换后的对象携带的元数据输出在 "meta" 键下

    支持的选项:
        pretty_print: 是否缩进输出
        indent_style: "space" 或 "tab"
        indent_size: 空格缩进数量
        ensure_ascii: 是否转义非 ASCII 字符
        sort_keys: 是否按键排序
    """

    format_id = FORMAT_JSON
    media_type = CONTENT_TYPE_JSON
    encoder_class = MorphJSONEncoder

    def format_record(self, record: Any, options: Mapping[str, Any] | None = None) -> str:
        data = {resource_key_of(record): record_data(record)}
        meta = record_meta(record)
        if meta:
            data[META_ENVELOPE_KEY] = meta
        return self.encode(data, options)

    def format_collection(self, collection: Any, options: Mapping[str, Any] | None = None) -> str:
        items = [record_data(item) for item in collection]
        meta = record_meta(collection)
        if not items and not meta:
            return self.encode([], options)

        data = {collection_resource_key(collection): items}
        if meta:
            data[META_ENVELOPE_KEY] = meta
        return self.encode(data, options)

    def format_structured(self, value: Any, options: Mapping[str, Any] | None = None) -> str:
        if isinstance(value, Arrayable) and not isinstance(value, (Mapping, Sequence)):
            value = value.to_dict()
        return self.encode(value, options)

    def encode(self, data: Any, options: Mapping[str, Any] | None = None) -> str:
        """
        按选项把数据编码为 JSON 字符串

        异常:
            SerializationError: 数据包含无法用 JSON 表示的值（如非 UTF-8 字节、NaN）
        """
        options = options or {}
        kwargs = {
            "cls": self.encoder_class,
            "ensure_ascii": bool(options.get(OPTION_ENSURE_ASCII, False)),
            "sort_keys": bool(options.get(OPTION_SORT_KEYS, False)),
            "allow_nan": False,
        }
        if options.get(OPTION_PRETTY_PRINT):
            kwargs["indent"] = self._build_indent(options)
        else:
            kwargs["separators"] = (",", ":")

        try:
            return json.dumps(data, **kwargs)
        except (TypeError, ValueError) as e:
            # UnicodeDecodeError 也是 ValueError 的子类
            logger.debug(f"JSON encoding failed for {type_name(data)}: {e}")
            raise SerializationError(
                f"Unable to represent {type_name(data)} as {self.format_id}: {e}",
                format=self.format_id,
                value=data,
            ) from e

    @staticmethod
    def _build_indent(options: Mapping[str, Any]) -> str:
        if options.get(OPTION_INDENT_STYLE) == INDENT_STYLE_TAB:
            return "\t"
        return " " * int(options.get(OPTION_INDENT_SIZE, DEFAULT_INDENT_SIZE))


class JSONPFormatter(JSONFormatter):
    """
    JSONP 格式化器

    选项中提供 callback 时输出 /**/callback(json); 并使用 application/javascript，
    未提供时与 JSONFormatter 完全一致
    """

    format_id = FORMAT_JSONP

    def content_type(self, options: Mapping[str, Any] | None = None) -> str:
        if self._get_callback(options):
            return CONTENT_TYPE_JAVASCRIPT
        return CONTENT_TYPE_JSON

    def format_record(self, record: Any, options: Mapping[str, Any] | None = None) -> str:
        return self._wrap(super().format_record(record, options), options)

    def format_collection(self, collection: Any, options: Mapping[str, Any] | None = None) -> str:
        return self._wrap(super().format_collection(collection, options), options)

    def format_structured(self, value: Any, options: Mapping[str, Any] | None = None) -> str:
        return self._wrap(super().format_structured(value, options), options)

    @staticmethod
    def _get_callback(options: Mapping[str, Any] | None) -> str:
        return (options or {}).get(OPTION_CALLBACK) or ""

    def _wrap(self, body: str, options: Mapping[str, Any] | None) -> str:
        callback = self._get_callback(options)
        if not callback:
            return body
        if not JSONP_CALLBACK_PATTERN.match(callback):
            raise SerializationError(f"Invalid JSONP callback name: {callback!r}", format=self.format_id, value=callback)
        return f"{JSONP_BODY_PREFIX}{callback}({body});"


class XMLFormatter(BaseFormatter):
    """
    XML 格式化器

    映射转换为子元素，序列转换为重复的 item_tag 元素，None 转换为空元素

    支持的选项:
        root_tag: 通用结构的根元素名称，默认 "root"
        item_tag: 序列元素名称，默认 "list-item"
    """

    format_id = FORMAT_XML
    media_type = CONTENT_TYPE_XML
    charset = "utf-8"

    def format_record(self, record: Any, options: Mapping[str, Any] | None = None) -> str:
        data = record_data(record)
        meta = record_meta(record)
        if meta:
            data = {**data, META_ENVELOPE_KEY: meta}
        return self.render(resource_key_of(record), data, options)

    def format_collection(self, collection: Any, options: Mapping[str, Any] | None = None) -> str:
        options = options or {}
        item_tag = options.get(OPTION_ITEM_TAG, DEFAULT_XML_ITEM_TAG)

        def write(xml):
            for item in collection:
                self._write_element(xml, resource_key_of(item) or item_tag, record_data(item), item_tag)
            meta = record_meta(collection)
            if meta:
                self._write_element(xml, META_ENVELOPE_KEY, meta, item_tag)

        return self._render_document(collection_resource_key(collection), write)

    def format_structured(self, value: Any, options: Mapping[str, Any] | None = None) -> str:
        options = options or {}
        return self.render(options.get(OPTION_ROOT_TAG, DEFAULT_XML_ROOT_TAG), value, options)

    def render(self, root_tag: str, data: Any, options: Mapping[str, Any] | None = None) -> str:
        """
        渲染完整的 XML 文档

        参数:
            root_tag: 根元素名称
            data: 根元素内容
            options: 格式选项

        返回:
            带 XML 声明的文档字符串

        异常:
            SerializationError: 键名不是合法的 XML 名称或字节内容不是 UTF-8
        """
        item_tag = (options or {}).get(OPTION_ITEM_TAG, DEFAULT_XML_ITEM_TAG)
        return self._render_document(root_tag, lambda xml: self._write_children(xml, data, item_tag))

    def _render_document(self, root_tag: str, write_children) -> str:
        stream = StringIO()
        xml = XMLGenerator(stream, self.charset)
        xml.startDocument()
        name = self._check_name(root_tag)
        xml.startElement(name, {})
        write_children(xml)
        xml.endElement(name)
        xml.endDocument()
        return stream.getvalue()

    def _write_element(self, xml: XMLGenerator, tag: Any, data: Any, item_tag: str) -> None:
        name = self._check_name(tag)
        xml.startElement(name, {})
        self._write_children(xml, data, item_tag)
        xml.endElement(name)

    def _write_children(self, xml: XMLGenerator, data: Any, item_tag: str) -> None:
        if data is None:
            return
        if isinstance(data, Mapping):
            for key, value in data.items():
                self._write_element(xml, key, value, item_tag)
        elif isinstance(data, COLLECTION_TYPES):
            for item in data:
                self._write_element(xml, resource_key_of(item) or item_tag, record_data(item), item_tag)
        elif isinstance(data, (str, bytes)):
            xml.characters(self._to_text(data))
        elif isinstance(data, Sequence):
            for item in data:
                self._write_element(xml, item_tag, item, item_tag)
        elif isinstance(data, Arrayable):
            self._write_children(xml, data.to_dict(), item_tag)
        else:
            xml.characters(self._to_text(data))

    def _to_text(self, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, bytes):
            try:
                return value.decode(self.charset)
            except UnicodeDecodeError as e:
                raise SerializationError(
                    f"Bytes value is not valid {self.charset}", format=self.format_id, value=value
                ) from e
        if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
            return value.isoformat()
        return str(value)

    def _check_name(self, name: Any) -> str:
        name = str(name)
        if not XML_NAME_PATTERN.match(name):
            raise SerializationError(f"{name!r} is not a valid XML element name", format=self.format_id, value=name)
        return name
