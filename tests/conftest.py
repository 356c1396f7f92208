"""
通用测试 Fixture 定义

提供测试所需的记录类型、格式化器、注册表、转换器等 Fixture
"""

import django
import pytest
from django.conf import settings
from django.db import models

# 配置 Django 设置（DRF Serializer 需要）
if not settings.configured:
    settings.configure(
        DEBUG=True,
        SECRET_KEY="test-secret-key",
        USE_I18N=True,
        USE_TZ=True,
    )
    django.setup()

from apimorph.formatter import BaseFormatter, JSONFormatter, JSONPFormatter, XMLFormatter  # noqa: E402
from apimorph.records import Record, RecordCollection  # noqa: E402
from apimorph.registry import FormatterRegistry  # noqa: E402
from apimorph.transformer import TransformerFactory  # noqa: E402


class Article(models.Model):
    """测试用的 Django 模型，只构造未保存的实例，不访问数据库"""

    title = models.CharField(max_length=100)

    class Meta:
        app_label = "apimorph_tests"


class User(Record):
    """测试用的单条记录"""

    resource_key = "user"

    def __init__(self, id, name, email=""):
        self.id = id
        self.name = name
        self.email = email

    def to_dict(self):
        return {"id": self.id, "name": self.name, "email": self.email}


class RecordingFormatter(BaseFormatter):
    """记录每次调用的格式化器，用于验证管道的分派行为"""

    format_id = "test"
    media_type = "application/x-test"

    def __init__(self, media_type=None):
        if media_type is not None:
            self.media_type = media_type
        self.calls = []

    def format_record(self, record, options=None):
        self.calls.append(("record", record, options))
        return "record-body"

    def format_collection(self, collection, options=None):
        self.calls.append(("collection", collection, options))
        return "collection-body"

    def format_structured(self, value, options=None):
        self.calls.append(("structured", value, options))
        return "structured-body"

    @property
    def methods(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def user_class():
    """返回 User 记录类"""
    return User


@pytest.fixture
def article_class():
    """返回 Article 模型类"""
    return Article


@pytest.fixture
def user():
    """单条 User 记录"""
    return User(1, "alice", "alice@example.com")


@pytest.fixture
def users():
    """包含 3 条记录的集合"""
    return RecordCollection([User(1, "alice"), User(2, "bob"), User(3, "carol")])


@pytest.fixture
def recording_formatter():
    """RecordingFormatter 实例"""
    return RecordingFormatter()


@pytest.fixture
def registry():
    """注册了 json、jsonp、xml 的格式化器目录"""
    return FormatterRegistry(
        {
            "json": JSONFormatter,
            "jsonp": JSONPFormatter,
            "xml": XMLFormatter,
        }
    )


@pytest.fixture
def recording_registry(recording_formatter):
    """只注册了 RecordingFormatter 的目录"""
    registry = FormatterRegistry()
    registry.register("test", recording_formatter, {"flag": True})
    return registry


@pytest.fixture
def user_factory():
    """为 User 注册了转换规则的 TransformerFactory"""
    factory = TransformerFactory()

    def transform_user(user):
        return {"id": user.id, "display_name": user.name.title()}

    factory.register(User, transform_user)
    return factory
