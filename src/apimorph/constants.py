"""
响应变形常量配置模块

定义格式标识、内容类型、格式化器选项键以及默认配置等
"""

# 格式标识常量
FORMAT_JSON = "json"
FORMAT_JSONP = "jsonp"
FORMAT_XML = "xml"

# 默认响应格式
DEFAULT_FORMAT = FORMAT_JSON

# 内容类型常量
CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_JAVASCRIPT = "application/javascript"
CONTENT_TYPE_XML = "application/xml"

# 响应头名称
HEADER_CONTENT_TYPE = "Content-Type"

# 默认状态码
DEFAULT_STATUS_CODE = 200
STATUS_NOT_ACCEPTABLE = 406  # 无法按 Accept 头格式化响应

# JSONP 响应体前缀（Django/Laravel 风格的 JSONP 输出以此开头）
JSONP_BODY_PREFIX = "/**/"

# 格式化器选项键
OPTION_PRETTY_PRINT = "pretty_print"
OPTION_INDENT_STYLE = "indent_style"
OPTION_INDENT_SIZE = "indent_size"
OPTION_ENSURE_ASCII = "ensure_ascii"
OPTION_SORT_KEYS = "sort_keys"
OPTION_CALLBACK = "callback"
OPTION_ROOT_TAG = "root_tag"
OPTION_ITEM_TAG = "item_tag"

# 缩进配置
INDENT_STYLE_SPACE = "space"
INDENT_STYLE_TAB = "tab"
DEFAULT_INDENT_SIZE = 2

# XML 默认标签
DEFAULT_XML_ROOT_TAG = "root"
DEFAULT_XML_ITEM_TAG = "list-item"

# 元数据在响应包络中的键名
META_ENVELOPE_KEY = "meta"

# 日志中截断长内容的最大长度
LOG_REPR_MAX_LENGTH = 200

# 日志格式
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Django settings 中的配置项名称
SETTINGS_NAMESPACE = "APIMORPH"

# 默认配置字典
DEFAULT_SETTINGS = {
    "DEFAULT_FORMAT": DEFAULT_FORMAT,  # morph 未指定格式时使用的格式
    "FORMATS": {  # 格式标识 -> 格式化器类路径
        FORMAT_JSON: "apimorph.formatter.JSONFormatter",
        FORMAT_JSONP: "apimorph.formatter.JSONPFormatter",
        FORMAT_XML: "apimorph.formatter.XMLFormatter",
    },
    "FORMATS_OPTIONS": {  # 格式标识 -> 格式化器选项
        FORMAT_JSON: {
            OPTION_PRETTY_PRINT: False,
            OPTION_INDENT_STYLE: INDENT_STYLE_SPACE,
            OPTION_INDENT_SIZE: DEFAULT_INDENT_SIZE,
        },
    },
}
