# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for parameter binding."""

import dataclasses
import datetime
import enum
from typing import Any, BinaryIO, Optional
from urllib.parse import urlencode

import pytest

from genro_web import BindingFailure, ConversionError, HttpRequest, Response, path
from genro_web.binder import ParameterBinder, convert
from genro_web.descriptors import build_handler_descriptors


class Priority(enum.Enum):
    LOW = "low"
    HIGH = "high"


class Slug:
    def __init__(self, text: str) -> None:
        self.text = text

    @classmethod
    def from_string(cls, text: str) -> "Slug":
        if " " in text:
            raise ValueError("slugs cannot contain spaces")
        return cls(text)


@dataclasses.dataclass
class Address:
    street: str
    city: str
    zip_code: str = "00000"
    note: Optional[str] = None


@dataclasses.dataclass
class Order:
    item: str
    quantity: int


class BindingService:
    def get_text(self, name: str, page: int = 1) -> None:
        pass

    def get_typed(self, count: int, ratio: float, day: datetime.date, level: Priority, slug: Slug) -> None:
        pass

    def get_flag(self, remember: bool) -> None:
        pass

    def get_array(self, items: list[int]) -> None:
        pass

    def get_optional(self, nick: Optional[str], age: Optional[int] = 30) -> None:
        pass

    def get_record(self, address: Address) -> None:
        pass

    def get_orders(self, orders: list[Order]) -> None:
        pass

    def get_optional_record(self, address: Optional[Address]) -> None:
        pass

    @path("/users/:id")
    def get_user(self, _id: int) -> None:
        pass

    @path("/items/:id")
    def get_item(self, _id: Optional[int] = None) -> None:
        pass

    def post_upload(self, request: HttpRequest, response: Response, body: BinaryIO) -> None:
        pass


def make_binder(query: dict[str, str] | None = None, form: dict[str, str] | None = None) -> ParameterBinder:
    headers = []
    body = b""
    if form is not None:
        headers.append((b"content-type", b"application/x-www-form-urlencoded"))
        body = urlencode(form).encode()
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": headers,
        "query_string": urlencode(query or {}).encode(),
    }
    request = HttpRequest(scope, body)
    return ParameterBinder(request, request.response)


def bind(method_name: str, binder: ParameterBinder) -> dict[str, Any]:
    descriptor = build_handler_descriptors(BindingService, getattr(BindingService, method_name))[0]
    return {param.name: binder.bind(param) for param in descriptor.parameters}


class TestConvert:
    """Tests for string conversion."""

    def test_passthrough(self) -> None:
        """Strings and unannotated targets are returned as is."""
        assert convert("x", str) == "x"
        assert convert("x", Any) == "x"

    def test_numbers(self) -> None:
        """Numeric types use their constructor."""
        assert convert("42", int) == 42
        assert convert("1.5", float) == 1.5

    @pytest.mark.parametrize("text, expected", [("true", True), ("1", True), ("On", True), ("no", False), ("", False)])
    def test_bool(self, text: str, expected: bool) -> None:
        """Booleans accept common words."""
        assert convert(text, bool) is expected

    def test_bool_invalid(self) -> None:
        """Unknown boolean words are rejected."""
        with pytest.raises(ConversionError):
            convert("maybe", bool)

    def test_enum_by_value_or_name(self) -> None:
        """Enums are looked up by value, then by name."""
        assert convert("high", Priority) is Priority.HIGH
        assert convert("LOW", Priority) is Priority.LOW

    def test_dates(self) -> None:
        """Dates and times use ISO format."""
        assert convert("2024-03-01", datetime.date) == datetime.date(2024, 3, 1)
        assert convert("2024-03-01T10:30:00", datetime.datetime) == datetime.datetime(2024, 3, 1, 10, 30)

    def test_from_string(self) -> None:
        """Types with from_string use it."""
        assert convert("hello", Slug).text == "hello"

    def test_bytes(self) -> None:
        """Bytes are UTF-8 encoded."""
        assert convert("é", bytes) == "é".encode("utf-8")

    def test_failure(self) -> None:
        """Conversion failures raise ConversionError."""
        with pytest.raises(ConversionError, match="Cannot convert 'abc' to int"):
            convert("abc", int)
        with pytest.raises(ConversionError):
            convert("not a slug", Slug)
        with pytest.raises(ConversionError):
            convert("medium", Priority)


class TestFields:
    """Tests for scalar fields."""

    def test_query_field(self) -> None:
        """Fields are read from the query string."""
        values = bind("get_text", make_binder({"name": "alice", "page": "3"}))
        assert values == {"name": "alice", "page": 3}

    def test_form_before_query(self) -> None:
        """Form fields take precedence over query fields."""
        values = bind("get_text", make_binder({"name": "query"}, {"name": "form"}))
        assert values["name"] == "form"

    def test_default(self) -> None:
        """Missing fields with a default get the default."""
        values = bind("get_text", make_binder({"name": "alice"}))
        assert values["page"] == 1

    def test_missing_required(self) -> None:
        """Missing required fields fail naming the parameter."""
        with pytest.raises(BindingFailure) as info:
            bind("get_text", make_binder())
        assert info.value.field == "name"
        assert info.value.detail == "Missing parameter name"

    def test_invalid_value(self) -> None:
        """Unconvertible values fail naming the parameter."""
        with pytest.raises(BindingFailure) as info:
            bind("get_text", make_binder({"name": "a", "page": "two"}))
        assert info.value.field == "page"
        assert "Cannot convert 'two' to int" in info.value.detail

    def test_typed_fields(self) -> None:
        """Fields are converted to their annotated types."""
        query = {"count": "3", "ratio": "0.5", "day": "2024-01-31", "level": "low", "slug": "my-post"}
        values = bind("get_typed", make_binder(query))
        assert values["count"] == 3
        assert values["ratio"] == 0.5
        assert values["day"] == datetime.date(2024, 1, 31)
        assert values["level"] is Priority.LOW
        assert values["slug"].text == "my-post"


class TestFlags:
    """Tests for presence-based booleans."""

    def test_present(self) -> None:
        """A present field is True whatever its value."""
        assert bind("get_flag", make_binder({"remember": ""}))["remember"] is True
        assert bind("get_flag", make_binder(form={"remember": "off"}))["remember"] is True

    def test_absent(self) -> None:
        """An absent field is False."""
        assert bind("get_flag", make_binder())["remember"] is False


class TestArrays:
    """Tests for indexed arrays."""

    def test_elements(self) -> None:
        """Elements are read from name_0, name_1, ..."""
        values = bind("get_array", make_binder({"items_0": "1", "items_1": "2", "items_2": "3"}))
        assert values["items"] == [1, 2, 3]

    def test_stops_at_gap(self) -> None:
        """Reading stops at the first missing index."""
        values = bind("get_array", make_binder({"items_0": "1", "items_2": "3"}))
        assert values["items"] == [1]

    def test_empty(self) -> None:
        """No elements give an empty list."""
        assert bind("get_array", make_binder())["items"] == []

    def test_invalid_element(self) -> None:
        """A bad element fails naming the array parameter."""
        with pytest.raises(BindingFailure) as info:
            bind("get_array", make_binder({"items_0": "1", "items_1": "x"}))
        assert info.value.field == "items"
        assert "items_1" in info.value.detail

    def test_array_of_records(self) -> None:
        """Records inside arrays use name_index_field."""
        query = {
            "orders_0_item": "pen",
            "orders_0_quantity": "2",
            "orders_1_item": "ink",
            "orders_1_quantity": "1",
        }
        values = bind("get_orders", make_binder(query))
        assert values["orders"] == [Order("pen", 2), Order("ink", 1)]


class TestOptional:
    """Tests for optional parameters."""

    def test_absent(self) -> None:
        """Absent optionals are None or their default."""
        values = bind("get_optional", make_binder())
        assert values == {"nick": None, "age": 30}

    def test_present(self) -> None:
        """Present optionals are converted."""
        values = bind("get_optional", make_binder({"nick": "al", "age": "41"}))
        assert values == {"nick": "al", "age": 41}

    def test_invalid(self) -> None:
        """Present but invalid optionals still fail."""
        with pytest.raises(BindingFailure):
            bind("get_optional", make_binder({"age": "old"}))


class TestRecords:
    """Tests for record parameters."""

    def test_fields(self) -> None:
        """Record fields are read from name_field."""
        query = {"address_street": "Via Roma 1", "address_city": "Milano", "address_zip_code": "20100"}
        values = bind("get_record", make_binder(query))
        assert values["address"] == Address("Via Roma 1", "Milano", "20100")

    def test_field_defaults(self) -> None:
        """Missing fields with defaults keep the dataclass default."""
        query = {"address_street": "Via Roma 1", "address_city": "Milano"}
        values = bind("get_record", make_binder(query))
        assert values["address"] == Address("Via Roma 1", "Milano")

    def test_missing_field(self) -> None:
        """A missing required field fails naming the record parameter."""
        with pytest.raises(BindingFailure) as info:
            bind("get_record", make_binder({"address_street": "Via Roma 1"}))
        assert info.value.field == "address"
        assert info.value.detail == "Missing parameter address_city"

    def test_optional_record(self) -> None:
        """An optional record is None when none of its fields is present."""
        assert bind("get_optional_record", make_binder())["address"] is None
        query = {"address_street": "a", "address_city": "b"}
        assert bind("get_optional_record", make_binder(query))["address"] == Address("a", "b")


class TestFrameworkParameters:
    """Tests for path captures and request-side handles."""

    def test_path_capture(self) -> None:
        """Path parameters read route captures."""
        binder = make_binder()
        binder.request.params = {"id": "42"}
        assert bind("get_user", binder) == {"_id": 42}

    def test_optional_path_capture(self) -> None:
        """Optional captures convert to the inner type."""
        binder = make_binder()
        binder.request.params = {"id": "5"}
        assert bind("get_item", binder) == {"_id": 5}

    def test_path_capture_invalid(self) -> None:
        """Unconvertible captures fail naming the parameter."""
        binder = make_binder()
        binder.request.params = {"id": "abc"}
        with pytest.raises(BindingFailure) as info:
            bind("get_user", binder)
        assert info.value.field == "_id"

    def test_path_capture_missing(self) -> None:
        """Missing captures fail."""
        with pytest.raises(BindingFailure, match="Missing request parameter for _id"):
            bind("get_user", make_binder())

    def test_handles(self) -> None:
        """Request, response and body stream are the request's own."""
        binder = make_binder(form={"a": "1"})
        values = bind("post_upload", binder)
        assert values["request"] is binder.request
        assert values["response"] is binder.response
        assert values["body"].read() == b"a=1"
