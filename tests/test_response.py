"""
response.py 模块的单元测试

测试用例:
- UT-RSP-001: 按输入形态分派到格式化器对应方法
- UT-RSP-002: 分派优先级（记录集合优先于通用结构）
- UT-RSP-003: Content-Type 协商与恢复
- UT-RSP-004: 转换仅在持有 Binding 时执行
- UT-RSP-005: 事件发布顺序
- UT-RSP-006: 元数据、响应头、Cookie、状态码
- UT-RSP-007: 标量与 Django 模型内容
- UT-RSP-008: 默认格式的选择
"""

import decimal
import json
from collections import UserDict
from unittest.mock import Mock

import pytest

from apimorph.binding import Binding
from apimorph.events import EventDispatcher, ResponseIsMorphing, ResponseWasMorphed
from apimorph.exceptions import MorphError, TransformationError, UnsupportedFormat
from apimorph.records import RecordCollection, ResourceCollection, ResourceItem
from apimorph.registry import FormatterRegistry
from apimorph.response import ApiResponse
from apimorph.transformer import BaseTransformerResolver, TransformerFactory


class ArrayableCollection(RecordCollection):
    """同时具备 to_dict() 的记录集合"""

    def to_dict(self):
        return {"items": self.to_list()}


class Opaque:
    """无法识别的对象"""


class TestShapeDispatch:
    """测试按形态分派"""

    @pytest.mark.unit
    def test_single_record_uses_format_record(self, recording_registry, recording_formatter, user):
        """UT-RSP-001: 单条记录调用 format_record"""
        # Arrange
        response = ApiResponse(user, registry=recording_registry)

        # Act
        response.morph("test")

        # Assert
        assert recording_formatter.methods == ["record"]
        assert recording_formatter.calls[0][1] is user
        assert response.content == "record-body"

    @pytest.mark.unit
    def test_collection_uses_format_collection(self, recording_registry, recording_formatter, users):
        """UT-RSP-001: 记录集合调用 format_collection"""
        response = ApiResponse(users, registry=recording_registry)

        response.morph("test")

        assert recording_formatter.methods == ["collection"]
        assert response.content == "collection-body"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value",
        [
            {"name": "a"},
            [1, 2, 3],
            (1, 2),
            UserDict({"a": 1}),
        ],
    )
    def test_structured_uses_format_structured(self, recording_registry, recording_formatter, value):
        """UT-RSP-001: 映射、序列调用 format_structured"""
        response = ApiResponse(value, registry=recording_registry)

        response.morph("test")

        assert recording_formatter.methods == ["structured"]
        assert response.content == "structured-body"

    @pytest.mark.unit
    def test_arrayable_uses_format_structured(self, recording_registry, recording_formatter):
        """UT-RSP-001: 具备 to_dict() 的对象调用 format_structured"""

        class Report:
            def to_dict(self):
                return {"total": 3}

        response = ApiResponse(Report(), registry=recording_registry)

        response.morph("test")

        assert recording_formatter.methods == ["structured"]

    @pytest.mark.unit
    def test_collection_wins_over_structured(self, recording_registry, recording_formatter, user_class):
        """UT-RSP-002: 既是集合又可转换为数组的值走 format_collection"""
        collection = ArrayableCollection([user_class(1, "a")])

        ApiResponse(collection, registry=recording_registry).morph("test")

        assert recording_formatter.methods == ["collection"]

    @pytest.mark.unit
    def test_plain_string_passes_through(self, recording_registry, recording_formatter):
        """UT-RSP-001: 纯字符串原样作为响应体，不调用格式化器"""
        response = ApiResponse("<p>héllo</p>", registry=recording_registry)

        response.morph("test")

        assert recording_formatter.calls == []
        assert response.content == "<p>héllo</p>"

    @pytest.mark.unit
    def test_bytes_pass_through(self, recording_registry, recording_formatter):
        """字节内容逐字节保留"""
        payload = b"\x00\xffraw"
        response = ApiResponse(payload, registry=recording_registry)

        response.morph("test")

        assert recording_formatter.calls == []
        assert response.content == payload

    @pytest.mark.unit
    def test_bytearray_passes_through(self, registry):
        """bytearray 作为文本原样保留，不编码为整数列表"""
        payload = bytearray(b"raw")

        response = ApiResponse(payload, registry=registry).morph("json")

        assert response.content == payload

    @pytest.mark.unit
    def test_none_becomes_empty_body(self, recording_registry, recording_formatter):
        """None 作为空字符串处理"""
        response = ApiResponse(None, registry=recording_registry)

        response.morph("test")

        assert recording_formatter.calls == []
        assert response.content == ""
        assert response.headers["Content-Type"] == "application/x-test"

    @pytest.mark.unit
    def test_opaque_value_leaves_body_untouched(self, recording_registry, recording_formatter):
        """无法识别的对象不设置响应体"""
        response = ApiResponse(Opaque(), registry=recording_registry)
        response.content = "previous"

        response.morph("test")

        assert recording_formatter.calls == []
        assert response.content == "previous"
        assert response.morphed is True

    @pytest.mark.unit
    def test_options_passed_to_formatter(self, recording_registry, recording_formatter):
        """格式选项显式传入格式化器"""
        ApiResponse({"a": 1}, registry=recording_registry).morph("test")

        assert recording_formatter.calls[0][2] == {"flag": True}


class TestContentTypeNegotiation:
    """测试 Content-Type 协商"""

    @pytest.mark.unit
    def test_formatter_content_type_applied(self, recording_registry):
        """UT-RSP-003: 识别的形态使用格式化器的内容类型"""
        response = ApiResponse({"a": 1}, headers={"Content-Type": "text/html"}, registry=recording_registry)

        response.morph("test")

        assert response.headers["content-type"] == "application/x-test"

    @pytest.mark.unit
    def test_opaque_restores_previous_content_type(self, recording_registry):
        """UT-RSP-003: 无法识别的形态恢复原 Content-Type"""
        response = ApiResponse(Opaque(), headers={"Content-Type": "text/html"}, registry=recording_registry)

        response.morph("test")

        assert response.headers["Content-Type"] == "text/html"

    @pytest.mark.unit
    def test_opaque_without_previous_content_type_leaves_headers_unchanged(self, recording_registry):
        """UT-RSP-003: 原本没有 Content-Type 时不残留暂定值"""
        response = ApiResponse(Opaque(), registry=recording_registry)
        before = dict(response.headers)

        response.morph("test")

        assert dict(response.headers) == before
        assert "Content-Type" not in response.headers

    @pytest.mark.unit
    def test_empty_formatter_content_type_does_not_override(self, recording_formatter):
        """格式化器内容类型为空时保留原值"""
        registry = FormatterRegistry()
        registry.register("blank", type(recording_formatter)(media_type=""))
        response = ApiResponse({"a": 1}, headers={"Content-Type": "text/csv"}, registry=registry)

        response.morph("blank")

        assert response.headers["Content-Type"] == "text/csv"

    @pytest.mark.unit
    def test_content_type_set_before_morphed_event(self, recording_registry):
        """变形完成事件触发时 Content-Type 已经设置"""
        seen = []
        events = EventDispatcher()
        events.listen(ResponseWasMorphed, lambda event: seen.append(event.response.headers.get("Content-Type")))

        ApiResponse(Opaque(), registry=recording_registry, events=events).morph("test")

        assert seen == ["application/x-test"]


class TestFormatResolution:
    """测试格式解析"""

    @pytest.mark.unit
    def test_unregistered_format_raises(self, recording_registry):
        """未注册的格式抛出 UnsupportedFormat"""
        response = ApiResponse({"a": 1}, registry=recording_registry)

        with pytest.raises(UnsupportedFormat) as exc_info:
            response.morph("xml")

        assert exc_info.value.format == "xml"
        assert exc_info.value.status_code == 406

    @pytest.mark.unit
    def test_default_registry_is_empty(self):
        """未提供目录时任何格式都不受支持"""
        with pytest.raises(UnsupportedFormat):
            ApiResponse({"a": 1}).morph("json")

    @pytest.mark.unit
    def test_default_format_used_when_omitted(self, recording_formatter):
        """未指定格式时使用 default_format"""

        class TestResponse(ApiResponse):
            default_format = "test"

        registry = FormatterRegistry({"test": recording_formatter})

        TestResponse({"a": 1}, registry=registry).morph()

        assert recording_formatter.methods == ["structured"]

    @pytest.mark.unit
    def test_class_level_registry(self, recording_registry, recording_formatter):
        """类属性注入的目录在实例间共享"""

        class TestResponse(ApiResponse):
            registry = recording_registry

        TestResponse({"a": 1}).morph("test")
        TestResponse([1]).morph("test")

        assert recording_formatter.methods == ["structured", "structured"]


class TestTransformation:
    """测试转换阶段"""

    @pytest.mark.unit
    def test_no_binding_skips_transform(self, recording_registry, user):
        """UT-RSP-004: 没有 Binding 时从不调用 transform"""
        resolver = Mock(spec=BaseTransformerResolver)
        resolver.is_transformable.return_value = True

        ApiResponse(user, registry=recording_registry, transformer=resolver).morph("test")

        resolver.transform.assert_not_called()

    @pytest.mark.unit
    def test_binding_without_resolver_skips_transform(self, recording_registry, recording_formatter, user):
        """没有解析器时不转换"""
        ApiResponse(user, binding=Binding(), registry=recording_registry).morph("test")

        assert recording_formatter.calls[0][1] is user

    @pytest.mark.unit
    def test_not_transformable_skips_transform(self, recording_registry, user):
        """内容不可转换时不调用 transform"""
        resolver = Mock(spec=BaseTransformerResolver)
        resolver.is_transformable.return_value = False

        ApiResponse(user, binding=Binding(), registry=recording_registry, transformer=resolver).morph("test")

        resolver.transform.assert_not_called()

    @pytest.mark.unit
    def test_record_formatted_with_transformed_value(
        self, recording_registry, recording_formatter, user, user_factory
    ):
        """UT-RSP-004: format_record 收到转换后的值"""
        binding = Binding()
        response = ApiResponse(user, binding=binding, registry=recording_registry, transformer=user_factory)

        response.morph("test")

        assert recording_formatter.methods == ["record"]
        formatted = recording_formatter.calls[0][1]
        assert isinstance(formatted, ResourceItem)
        assert formatted.to_dict() == {"id": 1, "display_name": "Alice"}
        assert response.original_content is user
        assert response.morphed_content is formatted

    @pytest.mark.unit
    def test_transformer_receives_response_binding(self, recording_registry, user):
        """解析器收到响应持有的 Binding"""
        binding = Binding()
        resolver = Mock(spec=BaseTransformerResolver)
        resolver.is_transformable.return_value = True
        resolver.transform.return_value = {"id": 1}

        ApiResponse(user, binding=binding, registry=recording_registry, transformer=resolver).morph("test")

        resolver.transform.assert_called_once_with(user, binding)

    @pytest.mark.unit
    def test_transformed_value_is_classified(self, recording_registry, recording_formatter, user):
        """分类使用转换后的值"""
        resolver = Mock(spec=BaseTransformerResolver)
        resolver.is_transformable.return_value = True
        resolver.transform.return_value = "already rendered"

        response = ApiResponse(user, binding=Binding(), registry=recording_registry, transformer=resolver)
        response.morph("test")

        assert recording_formatter.calls == []
        assert response.content == "already rendered"

    @pytest.mark.unit
    def test_transformation_error_propagates(self, recording_registry, user):
        """转换异常原样抛出"""
        error = TransformationError("boom")
        resolver = Mock(spec=BaseTransformerResolver)
        resolver.is_transformable.return_value = True
        resolver.transform.side_effect = error

        response = ApiResponse(user, binding=Binding(), registry=recording_registry, transformer=resolver)

        with pytest.raises(TransformationError) as exc_info:
            response.morph("test")
        assert exc_info.value is error

    @pytest.mark.unit
    def test_morph_twice_reruns_pipeline(self, recording_registry, recording_formatter, user, user_factory):
        """再次调用 morph 会完整重跑管道，原始内容不变"""
        response = ApiResponse(user, binding=Binding(), registry=recording_registry, transformer=user_factory)

        response.morph("test")
        response.morph("test")

        assert recording_formatter.methods == ["record", "record"]
        assert recording_formatter.calls[1][1].source is user


class TestEvents:
    """测试事件发布"""

    @pytest.mark.unit
    def test_events_fired_in_order(self, recording_registry, user, user_factory):
        """UT-RSP-005: 先发布变形开始事件，再发布变形完成事件"""
        received = []
        events = EventDispatcher()
        events.listen(ResponseIsMorphing, lambda event: received.append(("morphing", event.content)))
        events.listen(ResponseWasMorphed, lambda event: received.append(("morphed", event.content)))

        response = ApiResponse(
            user, binding=Binding(), registry=recording_registry, transformer=user_factory, events=events
        )
        response.morph("test")

        assert [name for name, _ in received] == ["morphing", "morphed"]
        assert received[0][1] is user
        assert isinstance(received[1][1], ResourceItem)

    @pytest.mark.unit
    def test_events_carry_response(self, recording_registry):
        """事件携带响应本身"""
        received = []
        events = EventDispatcher()
        events.listen(ResponseIsMorphing, received.append)

        response = ApiResponse({"a": 1}, registry=recording_registry, events=events)
        response.morph("test")

        assert received[0].response is response

    @pytest.mark.unit
    def test_morph_without_dispatcher(self, recording_registry):
        """未配置分发器时正常变形"""
        response = ApiResponse({"a": 1}, registry=recording_registry)

        assert response.morph("test") is response
        assert response.content == "structured-body"

    @pytest.mark.unit
    def test_listener_mutation_not_read_back(self, recording_registry, recording_formatter):
        """监听器修改事件内容不会影响管道"""
        events = EventDispatcher()

        def replace_content(event):
            event.content = "replaced"

        events.listen(ResponseIsMorphing, replace_content)

        ApiResponse({"a": 1}, registry=recording_registry, events=events).morph("test")

        assert recording_formatter.calls[0][1] == {"a": 1}


class TestMeta:
    """测试元数据接口"""

    @pytest.mark.unit
    def test_add_and_get_meta(self):
        """UT-RSP-006: add_meta 写入 Binding"""
        binding = Binding()
        response = ApiResponse({"a": 1}, binding=binding)

        result = response.add_meta("page", 1).meta("per_page", 20)

        assert result is response
        assert response.get_meta() == {"page": 1, "per_page": 20}
        assert binding.meta == {"page": 1, "per_page": 20}

    @pytest.mark.unit
    def test_set_meta_replaces(self):
        """set_meta 整体替换"""
        response = ApiResponse({"a": 1}, binding=Binding(meta={"old": True}))

        response.set_meta({"total": 3})

        assert response.get_meta() == {"total": 3}

    @pytest.mark.unit
    def test_meta_without_binding(self):
        """没有 Binding 时读取返回空字典，写入抛出异常"""
        response = ApiResponse({"a": 1})

        assert response.get_meta() == {}
        with pytest.raises(MorphError):
            response.add_meta("page", 1)
        with pytest.raises(MorphError):
            response.set_meta({"page": 1})


class TestPassthroughAccessors:
    """测试响应头、Cookie、状态码"""

    @pytest.mark.unit
    def test_with_header_replace(self):
        """UT-RSP-006: with_header 默认覆盖"""
        response = ApiResponse(headers={"X-Trace": "a"})

        response.with_header("x-trace", "b")

        assert response.headers["X-Trace"] == "b"

    @pytest.mark.unit
    def test_with_header_keep_existing(self):
        """replace=False 时保留已有值"""
        response = ApiResponse(headers={"X-Trace": "a"})

        response.header("X-Trace", "b", replace=False).header("X-New", "c", replace=False)

        assert response.headers["X-Trace"] == "a"
        assert response.headers["X-New"] == "c"

    @pytest.mark.unit
    def test_cookie(self):
        """cookie 保存值和属性"""
        response = ApiResponse()

        response.cookie("session", "abc", httponly=True).with_cookie("theme", "dark")

        assert response.cookies["session"] == {"value": "abc", "httponly": True}
        assert response.cookies["theme"] == {"value": "dark"}

    @pytest.mark.unit
    def test_status(self):
        """status 设置状态码"""
        response = ApiResponse(status=200)

        assert response.status(201) is response
        assert response.status_code == 201

    @pytest.mark.unit
    def test_with_exception(self):
        """with_exception 记录触发响应的异常"""
        error = ValueError("boom")
        response = ApiResponse(status=500)

        assert response.exception is None
        assert response.with_exception(error) is response
        assert response.exception is error

    @pytest.mark.unit
    def test_set_content_with_object_keeps_body(self):
        """非文本内容只保存为原始内容"""
        response = ApiResponse("body")

        response.set_content({"a": 1})

        assert response.content == "body"
        assert response.original_content == {"a": 1}
        assert response.morphed is False

    @pytest.mark.unit
    def test_repr(self):
        response = ApiResponse(status=204, headers={"Content-Type": "text/plain"})

        assert repr(response) == "<ApiResponse status=204 content_type='text/plain' morphed=False>"


class TestJSONPipeline:
    """测试与真实 JSON 格式化器配合"""

    @pytest.mark.unit
    def test_collection_with_resolver_meta(self, registry, users, user_factory):
        """集合转换后元数据出现在包络中"""
        binding = Binding(callback=lambda result, b: b.add_meta("count", len(result)))
        response = ApiResponse(users, binding=binding, registry=registry, transformer=user_factory)

        response.morph("json")

        body = json.loads(response.content)
        assert body["users"][0] == {"id": 1, "display_name": "Alice"}
        assert body["meta"] == {"count": 3}
        assert isinstance(response.morphed_content, ResourceCollection)
        assert response.get_meta() == {"count": 3}

    @pytest.mark.unit
    def test_morph_with_non_transformable_binding(self, registry):
        """有 Binding 但没有规则的内容按原样序列化"""
        response = ApiResponse({"a": 1}, binding=Binding(), registry=registry, transformer=TransformerFactory())

        response.morph("json")

        assert response.content == '{"a":1}'


class TestScalarAndModelContent:
    """测试标量与 Django 模型内容"""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value,expected",
        [(42, "42"), (1.5, "1.5"), (decimal.Decimal("9.90"), "9.90"), (True, "true"), (False, "false"), (0, "0")],
    )
    def test_scalar_morphed_as_text(self, registry, value, expected):
        """UT-RSP-007: 标量转换为文本作为响应体"""
        response = ApiResponse(value, registry=registry)

        response.morph("json")

        assert response.content == expected
        assert response.original_content == value
        assert response.headers["Content-Type"] == "application/json"

    @pytest.mark.unit
    def test_scalar_sets_body_before_morph(self):
        """设置标量内容时立即得到文本响应体"""
        response = ApiResponse(7)

        assert response.content == "7"
        assert response.original_content == 7

    @pytest.mark.unit
    def test_scalar_bypasses_formatter(self, recording_registry, recording_formatter):
        ApiResponse(42, registry=recording_registry).morph("test")

        assert recording_formatter.calls == []

    @pytest.mark.unit
    def test_django_model_as_json(self, registry, article_class):
        """UT-RSP-007: Django 模型实例按单条记录序列化"""
        response = ApiResponse(article_class(id=1, title="t"), registry=registry)

        response.morph("json")

        assert json.loads(response.content) == {"article": {"id": 1, "title": "t"}}

    @pytest.mark.unit
    def test_django_model_uses_format_record(self, recording_registry, recording_formatter, article_class):
        ApiResponse(article_class(id=1, title="t"), registry=recording_registry).morph("test")

        assert recording_formatter.methods == ["record"]

    @pytest.mark.unit
    def test_nested_django_model_in_structured_value(self, registry, article_class):
        """映射中嵌套的模型实例同样可以编码"""
        response = ApiResponse({"latest": article_class(id=2, title="x")}, registry=registry)

        response.morph("json")

        assert json.loads(response.content) == {"latest": {"id": 2, "title": "x"}}


class TestDefaultFormat:
    """测试默认格式的选择"""

    @pytest.mark.unit
    def test_registry_default_format_used(self, registry):
        """UT-RSP-008: 未指定格式时使用注册表的默认格式"""
        registry.set_default_format("xml")

        response = ApiResponse({"a": 1}, registry=registry).morph()

        assert response.headers["Content-Type"] == "application/xml"
        assert "<root><a>1</a></root>" in response.content

    @pytest.mark.unit
    def test_response_default_format_wins_over_registry(self, registry):
        """响应类声明的默认格式优先于注册表"""

        class XMLResponse(ApiResponse):
            default_format = "xml"

        registry.set_default_format("json")

        response = XMLResponse({"a": 1}, registry=registry).morph()

        assert response.headers["Content-Type"] == "application/xml"

    @pytest.mark.unit
    def test_fallback_to_json(self, registry):
        """两者都未设置时使用 json"""
        response = ApiResponse({"a": 1}, registry=registry).morph()

        assert response.content == '{"a":1}'
