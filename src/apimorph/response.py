"""API 响应核心模块

提供 ApiResponse：把处理函数返回的任意结果值变形为客户端可接受的线上表示，支持：
- 按格式标识选择格式化器（JSON、JSONP、XML 或自定义格式）
- 可选的领域对象转换，并累积分页、链接等元数据
- 变形前后事件
- 按输入形态分派到格式化器的对应方法

作者: HACK-WU
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import requests
from requests.structures import CaseInsensitiveDict

from apimorph.binding import Binding
from apimorph.constants import (
    DEFAULT_FORMAT,
    DEFAULT_STATUS_CODE,
    HEADER_CONTENT_TYPE,
    JSONP_BODY_PREFIX,
)
from apimorph.events import EventDispatcher, ResponseIsMorphing, ResponseWasMorphed
from apimorph.exceptions import MorphError, SerializationError
from apimorph.registry import FormatterRegistry
from apimorph.shapes import SCALAR_TYPES, TEXT_TYPES, InputShape, ShapeClassifier, default_classifier, scalar_to_text
from apimorph.transformer import BaseTransformerResolver
from apimorph.utils import safe_repr, type_name

logger = logging.getLogger(__name__)


class ApiResponse:
    """
    API 响应

    保存状态码、响应头、响应体、原始内容以及可选的转换绑定，
    调用 morph() 后响应体和 Content-Type 被更新为目标格式的表示

    类属性:
        default_format: morph() 未指定格式时使用的格式标识，None 时依次取注册表的默认格式和 "json"
        registry: 格式化器目录（进程启动时构建，按引用注入）
        transformer: 转换解析器，None 时跳过转换
        events: 事件分发器，None 时不发布事件
        classifier: 输入形态分类器

    使用示例:
        >>> registry = FormatterRegistry({"json": JSONFormatter})
        >>> response = ApiResponse({"name": "a"}, registry=registry)
        >>> response.morph("json").content
        '{"name":"a"}'
    """

    # ========== 基础配置 ==========
    default_format: str | None = None

    # ========== 协作组件 ==========
    # 格式化器目录，为 None 时使用空目录，任何格式都会被视为不支持
    registry: FormatterRegistry | None = None

    # 转换解析器，只有响应持有 Binding 时才会被调用
    transformer: BaseTransformerResolver | None = None

    # 事件分发器
    events: EventDispatcher | None = None

    # 输入形态分类器，可替换以支持额外的 ORM 类型
    classifier: ShapeClassifier = default_classifier

    def __init__(
        self,
        content: Any = None,
        status: int = DEFAULT_STATUS_CODE,
        headers: Mapping[str, str] | None = None,
        binding: Binding | None = None,
        registry: FormatterRegistry | None = None,
        transformer: BaseTransformerResolver | None = None,
        events: EventDispatcher | None = None,
        classifier: ShapeClassifier | None = None,
    ):
        """
        初始化响应实例

        参数:
            content: 处理函数返回的结果值（任意形态）
            status: HTTP 状态码
            headers: 初始响应头
            binding: 转换绑定
            registry: 格式化器目录（覆盖类属性）
            transformer: 转换解析器（覆盖类属性）
            events: 事件分发器（覆盖类属性）
            classifier: 输入形态分类器（覆盖类属性）
        """
        self.status_code = status
        self.headers: CaseInsensitiveDict = CaseInsensitiveDict(headers or {})
        self.cookies: dict[str, dict[str, Any]] = {}
        self.content: str | bytes = ""
        self.original_content: Any = None
        self.binding = binding
        # 触发错误响应的异常，由 with_exception() 设置
        self.exception: BaseException | None = None

        if registry is None:
            registry = self.registry if self.registry is not None else FormatterRegistry()
        self.registry = registry
        self.transformer = transformer if transformer is not None else self.transformer
        self.events = events if events is not None else self.events
        self.classifier = classifier if classifier is not None else self.classifier

        # 变形状态：morphed_content 为最近一次 morph 分类时使用的值（可能已转换）
        self.morphed = False
        self.morphed_content: Any = None

        self.set_content(content)

    # ========== 构造方法 ==========

    @classmethod
    def from_existing(cls, old: Any, **kwargs) -> ApiResponse:
        """
        从已有响应对象创建 API 响应

        参数:
            old: 具备 original_content（或 content）、status_code、headers 的响应对象
            **kwargs: 传递给构造函数的额外参数

        返回:
            新的 ApiResponse，复制原始内容、状态码和响应头
        """
        original = getattr(old, "original_content", None)
        if original is None:
            original = getattr(old, "content", None)
        new = cls(original, old.status_code, **kwargs)
        new.headers = CaseInsensitiveDict(old.headers)
        return new

    @classmethod
    def from_json(cls, json_response: requests.Response, **kwargs) -> ApiResponse:
        """
        从 JSON 响应（如上游服务返回的 requests.Response）创建 API 响应

        以 /**/ 开头的响应体是 JSONP 输出，原样保留；其他响应体按 JSON 解码

        参数:
            json_response: requests.Response 或具备 text、json()、status_code、headers 的对象
            **kwargs: 传递给构造函数的额外参数

        异常:
            SerializationError: 响应体不是合法的 JSON
        """
        content = json_response.text
        if not content.startswith(JSONP_BODY_PREFIX):
            try:
                content = json_response.json()
            except (requests.exceptions.JSONDecodeError, ValueError) as e:
                raise SerializationError(f"Response body is not valid JSON: {e}", value=json_response.text) from e

        new = cls(content, json_response.status_code, **kwargs)
        new.headers = CaseInsensitiveDict(json_response.headers)
        return new

    # ========== 变形管道 ==========

    def morph(self, format: str | None = None) -> ApiResponse:
        """
        把响应变形为指定格式

        参数:
            format: 格式标识，None 时使用 default_format、注册表默认格式或 "json"

        返回:
            响应自身

        异常:
            UnsupportedFormat: 格式没有注册格式化器
            SerializationError: 格式化器无法表示内容
            TransformationError: 转换规则失败

        执行步骤:
            1. 捕获原始内容（None 视为空字符串，标量转换为文本）
            2. 发布变形开始事件
            3. 持有 Binding 且内容可转换时执行转换
            4. 获取格式化器及其选项
            5. 暂定设置 Content-Type
            6. 发布变形完成事件
            7. 按输入形态分派序列化，无法识别时恢复原 Content-Type
        """
        format = format or self.default_format or self.registry.default_format or DEFAULT_FORMAT

        # ========== 步骤1: 捕获原始内容 ==========
        content = self.original_content if self.original_content is not None else ""
        if isinstance(content, SCALAR_TYPES):
            content = scalar_to_text(content)

        # ========== 步骤2: 变形开始事件 ==========
        self._fire(ResponseIsMorphing(self, content))

        # ========== 步骤3: 转换 ==========
        if self.binding is not None and self.transformer is not None and self.transformer.is_transformable(content):
            logger.debug(f"Transforming {type_name(content)} with {self.binding!r}")
            content = self.transformer.transform(content, self.binding)

        # ========== 步骤4: 获取格式化器和选项 ==========
        formatter = self.registry.get(format)
        options = self.registry.options_for(format)

        # ========== 步骤5: 内容类型协商 ==========
        default_content_type = self.headers.get(HEADER_CONTENT_TYPE)
        # 格式化器没有声明内容类型时不设置，避免写入空值
        content_type = formatter.content_type(options)
        if content_type:
            self.headers[HEADER_CONTENT_TYPE] = content_type

        # ========== 步骤6: 变形完成事件 ==========
        self._fire(ResponseWasMorphed(self, content))

        # ========== 步骤7: 按形态分派 ==========
        shape = self.classifier.classify(content)
        logger.debug(f"Morphing {type_name(content)} as {shape.name} with format {format!r}")

        if shape is InputShape.RECORD:
            self.content = formatter.format_record(content, options)
        elif shape is InputShape.COLLECTION:
            self.content = formatter.format_collection(content, options)
        elif shape is InputShape.STRUCTURED:
            self.content = formatter.format_structured(content, options)
        elif shape is InputShape.STRING:
            self.content = content
        else:
            logger.warning(f"Unable to morph {safe_repr(content)} as {format!r}, leaving content untouched")
            self._restore_content_type(default_content_type, content_type)

        self.morphed = True
        self.morphed_content = content
        return self

    def _restore_content_type(self, default_content_type: str | None, applied_content_type: str) -> None:
        """没有应用任何格式时撤销暂定设置的 Content-Type"""
        if default_content_type:
            self.headers[HEADER_CONTENT_TYPE] = default_content_type
        elif applied_content_type:
            self.headers.pop(HEADER_CONTENT_TYPE, None)

    def _fire(self, event: Any) -> None:
        """发布事件，未配置分发器时不做任何操作"""
        if self.events is None:
            return
        self.events.dispatch(event)

    # ========== 内容 ==========

    def set_content(self, content: Any) -> ApiResponse:
        """
        设置响应内容

        字符串和字节同时作为响应体和原始内容；数字、布尔值等标量转换为文本作为响应体，
        原始内容保留标量本身；其他值无法直接作为响应体，只保存为原始内容，等待 morph() 序列化
        """
        if content is None:
            self.content = ""
            self.original_content = None
        elif isinstance(content, TEXT_TYPES):
            self.content = content
            self.original_content = content
        elif isinstance(content, SCALAR_TYPES):
            self.content = scalar_to_text(content)
            self.original_content = content
        else:
            self.original_content = content
        self.morphed = False
        return self

    def get_content(self) -> str | bytes:
        return self.content

    def get_original_content(self) -> Any:
        return self.original_content

    # ========== 元数据 ==========

    def _require_binding(self) -> Binding:
        if self.binding is None:
            raise MorphError("Response has no transformer binding to hold meta data")
        return self.binding

    def add_meta(self, key: str, value: Any) -> ApiResponse:
        """添加一个元数据键值对"""
        self._require_binding().add_meta(key, value)
        return self

    def meta(self, key: str, value: Any) -> ApiResponse:
        return self.add_meta(key, value)

    def set_meta(self, meta: Mapping[str, Any]) -> ApiResponse:
        """整体替换元数据"""
        self._require_binding().set_meta(meta)
        return self

    def get_meta(self) -> dict[str, Any]:
        """返回元数据，没有绑定时返回空字典"""
        if self.binding is None:
            return {}
        return self.binding.get_meta()

    # ========== 响应头、Cookie、状态码 ==========

    def with_header(self, key: str, value: str, replace: bool = True) -> ApiResponse:
        """
        设置响应头

        参数:
            key: 响应头名称（不区分大小写）
            value: 响应头值
            replace: False 时保留已存在的值
        """
        if replace or key not in self.headers:
            self.headers[key] = value
        return self

    def header(self, key: str, value: str, replace: bool = True) -> ApiResponse:
        return self.with_header(key, value, replace)

    def cookie(self, name: str, value: str, **attrs) -> ApiResponse:
        """
        添加 Cookie

        参数:
            name: Cookie 名称
            value: Cookie 值
            **attrs: max_age、path、domain、secure、httponly 等属性
        """
        self.cookies[name] = {"value": value, **attrs}
        return self

    def with_cookie(self, name: str, value: str, **attrs) -> ApiResponse:
        return self.cookie(name, value, **attrs)

    def with_exception(self, exception: BaseException) -> ApiResponse:
        """记录触发此响应的异常，供错误处理和日志使用"""
        self.exception = exception
        return self

    def set_status_code(self, status_code: int) -> ApiResponse:
        self.status_code = int(status_code)
        return self

    def status(self, status_code: int) -> ApiResponse:
        return self.set_status_code(status_code)

    def __repr__(self) -> str:
        return (
            f"<ApiResponse status={self.status_code} "
            f"content_type={self.headers.get(HEADER_CONTENT_TYPE)!r} morphed={self.morphed}>"
        )
