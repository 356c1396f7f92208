"""
apimorph 响应内容协商与变形模块

把处理函数返回的任意结果值（标量、结构化记录或记录集合）变形为客户端接受的线上格式

主要组件:
    - ApiResponse: 响应对象及变形管道
    - FormatterRegistry: 格式化器目录
    - 格式化器: JSONFormatter, JSONPFormatter, XMLFormatter
    - 转换器: TransformerFactory, SerializerTransformer, CallableTransformer
    - 事件: EventDispatcher, ResponseIsMorphing, ResponseWasMorphed
    - 异常类: MorphError 及其子类

使用示例:
    >>> from apimorph import ApiResponse, build_registry
    >>>
    >>> registry = build_registry(freeze=True)
    >>> response = ApiResponse({"name": "a"}, registry=registry).morph("json")
    >>> response.content
    '{"name":"a"}'
"""

# 核心响应
from apimorph.response import ApiResponse

# 绑定
from apimorph.binding import Binding

# 异常类
from apimorph.exceptions import (
    MorphConfigurationError,
    MorphError,
    RegistryFrozenError,
    SerializationError,
    TransformationError,
    UnsupportedFormat,
)

# 格式化器
from apimorph.formatter import (
    BaseFormatter,
    JSONFormatter,
    JSONPFormatter,
    XMLFormatter,
)

# 格式化器目录
from apimorph.registry import FormatterRegistry

# 记录类型标签
from apimorph.records import (
    Arrayable,
    Record,
    RecordCollection,
    ResourceCollection,
    ResourceItem,
)

# 输入形态
from apimorph.shapes import InputShape, ShapeClassifier, classify_shape

# 转换器
from apimorph.transformer import (
    BaseTransformer,
    BaseTransformerResolver,
    CallableTransformer,
    SerializerTransformer,
    TransformerFactory,
)

# 事件
from apimorph.events import (
    EventDispatcher,
    ResponseIsMorphing,
    ResponseWasMorphed,
)

# 配置
from apimorph.conf import build_registry, get_settings

# 常量配置
from apimorph.constants import (
    CONTENT_TYPE_JAVASCRIPT,
    CONTENT_TYPE_JSON,
    CONTENT_TYPE_XML,
    DEFAULT_FORMAT,
    FORMAT_JSON,
    FORMAT_JSONP,
    FORMAT_XML,
)

__all__ = [
    # 核心类
    "ApiResponse",
    "Binding",
    # 异常
    "MorphError",
    "UnsupportedFormat",
    "SerializationError",
    "TransformationError",
    "MorphConfigurationError",
    "RegistryFrozenError",
    # 格式化器
    "BaseFormatter",
    "JSONFormatter",
    "JSONPFormatter",
    "XMLFormatter",
    "FormatterRegistry",
    # 记录
    "Arrayable",
    "Record",
    "RecordCollection",
    "ResourceItem",
    "ResourceCollection",
    # 形态
    "InputShape",
    "ShapeClassifier",
    "classify_shape",
    # 转换器
    "BaseTransformer",
    "BaseTransformerResolver",
    "CallableTransformer",
    "SerializerTransformer",
    "TransformerFactory",
    # 事件
    "EventDispatcher",
    "ResponseIsMorphing",
    "ResponseWasMorphed",
    # 配置
    "build_registry",
    "get_settings",
    # 常量
    "DEFAULT_FORMAT",
    "FORMAT_JSON",
    "FORMAT_JSONP",
    "FORMAT_XML",
    "CONTENT_TYPE_JSON",
    "CONTENT_TYPE_JAVASCRIPT",
    "CONTENT_TYPE_XML",
]

__version__ = "0.1.0"
__author__ = "HACK-WU"
