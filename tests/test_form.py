"""Request form state machine tests"""

import json
import re

import pytest

from openapicmd.config import Config, Environment, FormSettings
from openapicmd.enums import LookupStep, Mode, ParameterLocation
from openapicmd.errors import FetchInProgress, ImportException, LookupException
from openapicmd.executor import RequestResult
from openapicmd.form import FormCache, RequestForm
from openapicmd.keys import BACKSPACE, CTRL_ENTER, DOWN, ENTER, ESCAPE, SHIFT_TAB, TAB, UP, Key
from openapicmd.lookups import FieldLookup
from openapicmd.openapi import Endpoint, Parameter, RequestBody
from openapicmd.storages import get_stores
from openapicmd.variables import VariableStore

UUID_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[0-9a-f]{4}-[0-9a-f]{12}")

SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "address": {
            "type": "object",
            "properties": {"city": {"type": "string"}, "zip": {"type": "string"}},
        },
        "age": {"type": "integer"},
    },
}

ENDPOINT = Endpoint(
    id="post:/users/{id}",
    method="post",
    path="/users/{id}",
    parameters=[
        Parameter(name="id", location=ParameterLocation.PATH, required=True),
        Parameter(name="verbose", location=ParameterLocation.QUERY, type="boolean"),
    ],
    request_body=RequestBody(schema=SCHEMA),
)

USERS = Endpoint(id="get:/users", method="get", path="/users")

# "c" sits past the default depth cap and is edited as one JSON leaf
DEEP_SCHEMA = {
    "type": "object",
    "properties": {
        "a": {
            "type": "object",
            "properties": {
                "b": {
                    "type": "object",
                    "properties": {
                        "c": {"type": "object", "properties": {"d": {"type": "integer"}}},
                    },
                },
            },
        },
        "note": {"type": "string", "nullable": True},
    },
}

ALL_IDS = [
    "baseUrl",
    "path:id",
    "query:verbose",
    "headers",
    "body:name",
    "body-group:address",
    "body:address.city",
    "body:address.zip",
    "body:age",
    "__submit__",
]


class FakeExecutor:
    def __init__(self, result=None):
        self.calls = []
        self.result = result or RequestResult(
            status=200, status_text="OK", body={"id": "1"}, duration_ms=5
        )

    def __call__(self, endpoint, values, base_url):
        self.calls.append((endpoint, values, base_url))
        return self.result


def make_form(executor=None, **kwargs):
    kwargs.setdefault("fallback_base_url", "http://localhost")
    return RequestForm(ENDPOINT, executor or FakeExecutor(), **kwargs)


def press(form, text):
    for char in text:
        form.handle_key(Key.of(char))


@pytest.fixture
def stores(tmp_path):
    return get_stores(config=Config(data_dir=str(tmp_path)))


class TestNavigation:
    def test_navigable_order(self):
        assert make_form().navigable == ALL_IDS

    def test_forward_wraps_around(self):
        form = make_form()
        for _ in range(len(ALL_IDS)):
            form.handle_key(TAB)

        assert form.focus == "baseUrl"

    def test_backward_wraps_to_submit(self):
        form = make_form()
        form.handle_key(UP)
        assert form.focus == "__submit__"
        form.handle_key(SHIFT_TAB)
        assert form.focus == "body:age"

    def test_collapsed_group_hides_children(self):
        form = make_form()
        form.focus = "body-group:address"

        form.handle_key(ENTER)

        assert form.collapsed == {"address"}
        assert "body:address.city" not in form.navigable
        assert len(form.navigable) == len(ALL_IDS) - 2
        form.handle_key(DOWN)
        assert form.focus == "body:age"

    def test_collapsed_group_is_left_out_of_body(self):
        form = make_form()
        form.set_value("body:name", "Ana")
        form.set_value("body:address.city", "Rio")
        form.toggle_group("address")

        assert json.loads(form.build_request_values().body) == {"name": "Ana"}

        form.toggle_group("address")
        assert json.loads(form.build_request_values().body) == {
            "name": "Ana",
            "address": {"city": "Rio"},
        }

    def test_scroll_follows_focus(self):
        form = make_form(settings=FormSettings(viewport=3))
        for _ in range(4):
            form.handle_key(DOWN)

        assert form.scroll == 2
        assert len(form.render()) == 3
        assert form.render()[-1].startswith("▶ ")


class TestEditing:
    def test_integer_field(self):
        form = make_form()
        form.focus = "body:age"

        form.handle_key(ENTER)
        assert form.mode == Mode.EDIT
        press(form, "4x2")
        form.handle_key(ENTER)

        assert form.body_values["age"] == "42"
        assert form.mode == Mode.NAVIGATE
        assert form.focus == "__submit__"

    def test_cancel_keeps_focus(self):
        form = make_form()
        form.focus = "body:name"

        form.handle_key(ENTER)
        press(form, "Ana")
        form.handle_key(BACKSPACE)
        form.handle_key(ESCAPE)

        assert form.mode == Mode.NAVIGATE
        assert form.focus == "body:name"
        assert form.body_values["name"] == "An"
        assert form.closed is False

    def test_boolean_field_starts_true(self):
        form = make_form()
        form.focus = "query:verbose"

        form.handle_key(ENTER)

        assert form.query_values["verbose"] == "true"
        form.handle_key(DOWN)
        assert form.query_values["verbose"] == "false"

    def test_environment_base_url_is_read_only(self):
        form = make_form(env=Environment(name="dev", base_url="http://dev.api"))

        form.handle_key(ENTER)

        assert form.mode == Mode.NAVIGATE
        assert form.focus == "path:id"
        assert form.effective_base_url == "http://dev.api"

    def test_escape_closes_form(self):
        form = make_form()
        form.handle_key(ESCAPE)

        assert form.closed is True


class TestSmartFill:
    def test_forward_move_fills_matching_variable(self):
        form = make_form(variables=VariableStore({"ID": "7"}))
        form.focus = "path:id"

        form.handle_key(TAB)

        assert form.path_values["id"] == "{{ID}}"
        assert form.display_value("path:id") == "7"

    def test_backward_move_does_not_fill(self):
        form = make_form(variables=VariableStore({"ID": "7"}))
        form.focus = "path:id"

        form.handle_key(SHIFT_TAB)

        assert form.path_values["id"] == ""

    def test_filled_value_is_not_overwritten(self):
        form = make_form(variables=VariableStore({"ID": "7"}))
        form.set_value("path:id", "99")
        form.focus = "path:id"

        form.handle_key(TAB)

        assert form.path_values["id"] == "99"

    def test_disabled(self):
        form = make_form(variables=VariableStore({"ID": "7"}), settings=FormSettings(smart_fill=False))
        form.focus = "path:id"

        form.handle_key(TAB)

        assert form.path_values["id"] == ""

    def test_parameter_example_fills_query(self):
        endpoint = Endpoint(
            id="get:/search",
            method="get",
            path="/search",
            parameters=[
                Parameter(name="q", location=ParameterLocation.QUERY, schema={"type": "string", "example": "cats"}),
            ],
        )
        form = RequestForm(endpoint, FakeExecutor(), variables=VariableStore({"q": "dogs"}))
        form.focus = "query:q"

        form.handle_key(TAB)

        assert form.query_values["q"] == "cats"

    def test_trained_generator_fills_field(self, stores):
        form = make_form(stores=stores)
        form.focus = "body:name"
        assert UUID_RE.fullmatch(form.apply_generator("uuid"))
        assert stores.patterns.get_all() == {"name": "uuid"}

        other = make_form(stores=stores)
        other.focus = "body:name"
        other.handle_key(TAB)

        assert UUID_RE.fullmatch(other.body_values["name"])


class TestVariables:
    def test_picker_inserts_reference(self):
        form = make_form(variables=VariableStore({"a": "1", "b": "2"}))
        form.focus = "body:name"

        press(form, "v")
        assert form.mode == Mode.VARIABLE_PICKER
        form.handle_key(DOWN)
        form.handle_key(ENTER)

        assert form.body_values["name"] == "{{b}}"
        assert form.display_value("body:name") == "2"
        assert form.mode == Mode.NAVIGATE

        press(form, "x")
        assert form.body_values["name"] == ""

    def test_picker_without_variables(self):
        form = make_form()
        form.focus = "body:name"

        press(form, "v")

        assert form.mode == Mode.NAVIGATE
        assert form.status == "No variables defined"

    def test_unbound_reference_is_shown_raw(self):
        form = make_form()
        form.set_value("body:name", "{{nobody}}")

        assert form.display_value("body:name") == "{{nobody}}"


class TestSubmit:
    def test_request_values_resolve_variables(self):
        executor = FakeExecutor()
        form = make_form(executor, variables=VariableStore({"ID": "7"}))
        form.set_value("path:id", "{{ID}}")
        form.set_value("headers", '{"X-Trace": "{{ID}}"}')
        form.set_value("body:name", "Ana")
        form.set_value("body:age", "30")

        form.handle_key(CTRL_ENTER)

        endpoint, values, base_url = executor.calls[0]
        assert endpoint is ENDPOINT
        assert base_url == "http://localhost"
        assert values.path_params == {"id": "7"}
        assert values.headers == {"X-Trace": "7"}
        assert json.loads(values.body) == {"name": "Ana", "age": 30}
        assert form.path_values["id"] == "{{ID}}"
        assert form.status == "200 OK (5ms)"

    def test_enter_on_submit_sends(self):
        executor = FakeExecutor()
        form = make_form(executor)
        form.focus = "__submit__"

        form.handle_key(ENTER)

        assert len(executor.calls) == 1
        assert form.result.status == 200

    def test_submit_from_edit_mode(self):
        executor = FakeExecutor()
        form = make_form(executor)
        form.focus = "body:name"
        form.handle_key(ENTER)

        form.handle_key(CTRL_ENTER)

        assert len(executor.calls) == 1
        assert form.mode == Mode.NAVIGATE

    def test_invalid_headers_are_ignored(self):
        form = make_form()
        form.set_value("headers", "not json")

        assert form.build_request_values().headers == {}

    def test_error_status(self):
        form = make_form(FakeExecutor(RequestResult(status=0, error="boom")))

        form.submit()

        assert form.status == "Error: boom"

    def test_concurrent_submit_is_rejected(self):
        executor = FakeExecutor()
        form = make_form(executor)
        form.fetching = True

        with pytest.raises(FetchInProgress):
            form.submit()

        form.handle_key(CTRL_ENTER)
        assert executor.calls == []
        assert "in progress" in form.status

    def test_submit_during_lookup_is_rejected(self):
        form = make_form()
        form.lookup_runner.fetching = True

        with pytest.raises(FetchInProgress):
            form.submit()

    def test_history_entry_is_added(self, stores):
        form = make_form(stores=stores, env=Environment(name="dev", base_url="http://dev.api"))
        form.set_value("body:name", "Ana")

        form.submit()

        entries = stores.history.get_all()
        assert len(entries) == 1
        assert entries[0].endpoint_id == ENDPOINT.id
        assert entries[0].env_name == "dev"
        assert entries[0].body_field_values == {"name": "Ana"}
        assert entries[0].result.status == 200


class TestImport:
    def test_curl_command(self):
        form = make_form()
        text = (
            "curl -X POST 'http://api.test/users/42?verbose=true' "
            "-H 'X-A: 1' "
            "-d '{\"name\": \"Bob\", \"address\": {\"city\": \"Rio\"}}'"
        )

        form.apply_import(text)

        assert form.path_values == {"id": "42"}
        assert form.query_values == {"verbose": "true"}
        assert json.loads(form.headers_text) == {"x-a": "1"}
        assert form.body_values["name"] == "Bob"
        assert form.body_values["address.city"] == "Rio"
        assert form.base_url == "http://api.test"
        assert form.status == "Imported"

    def test_curl_keeps_environment_base_url(self):
        form = make_form(env=Environment(name="dev", base_url="http://dev.api"))

        changes = form.parse_import("curl http://api.test/users/1")

        assert "base_url" not in changes

    def test_json_object_fills_body(self):
        form = make_form()
        form.set_value("body:name", "Ana")

        form.apply_import('{"age": 5}')

        assert form.body_values["age"] == "5"
        assert form.body_values["name"] == "Ana"

    @pytest.mark.parametrize(
        "text, message",
        [("{bad", "Invalid JSON"), ("[1, 2]", "must be an object"), ("curl", "curl")],
    )
    def test_malformed_text_changes_nothing(self, text, message):
        form = make_form()
        form.set_value("body:name", "Ana")
        before = form.snapshot()

        with pytest.raises(ImportException, match=message):
            form.apply_import(text)

        assert form.snapshot() == before

    def test_import_through_keys(self):
        form = make_form()

        press(form, "i")
        assert form.mode == Mode.IMPORT
        press(form, '{"name": "Zoe"}')
        form.handle_key(ENTER)

        assert form.body_values["name"] == "Zoe"
        assert form.mode == Mode.NAVIGATE

    def test_failed_import_through_keys_sets_status(self):
        form = make_form()

        press(form, "i{bad")
        form.handle_key(ENTER)

        assert form.status.startswith("Invalid JSON")
        assert form.mode == Mode.NAVIGATE


class TestNextPage:
    def test_cursor(self):
        form = make_form()
        form.result = RequestResult(status=200, body={"items": [], "next_cursor": "abc"})

        assert form.apply_next_page() is True
        assert form.query_values["cursor"] == "abc"

    def test_next_url_query(self):
        form = make_form()
        form.result = RequestResult(status=200, body={"next": "http://x/items?page=2&size=10"})

        press(form, "n")

        assert form.query_values["page"] == "2"
        assert form.query_values["size"] == "10"

    def test_no_next_page(self):
        form = make_form()
        form.result = RequestResult(status=200, body={"items": []})

        assert form.apply_next_page() is False
        assert form.status == "No next page"


class TestFormCache:
    def test_values_survive_reopening(self):
        cache = FormCache()
        form = make_form(cache=cache)
        form.set_value("body:name", "Ana")
        form.toggle_group("address")
        form.handle_key(ESCAPE)

        reopened = make_form(cache=cache)

        assert reopened.body_values["name"] == "Ana"
        assert reopened.collapsed == {"address"}

    def test_clear(self):
        cache = FormCache()
        make_form(cache=cache).set_value("body:name", "Ana")
        cache.clear(ENDPOINT.id)

        assert make_form(cache=cache).body_values["name"] == ""


class TestLookups:
    def test_saved_field_lookup_fills_value(self, stores):
        stores.field_lookups.set(
            "name",
            FieldLookup(endpoint_id=USERS.id, method="get", path="/users", value_path="users[].name"),
        )
        executor = FakeExecutor(
            RequestResult(status=200, body={"users": [{"name": "Ana"}, {"name": "Bia"}]})
        )
        form = make_form(executor, stores=stores)
        form.focus = "body:name"

        press(form, "l")
        assert form.mode == Mode.LOOKUP_WIZARD
        assert form.wizard.step == LookupStep.PICK
        form.handle_key(DOWN)
        form.handle_key(ENTER)

        assert form.body_values["name"] == "Bia"
        assert form.status == "Selected Bia"
        assert form.mode == Mode.NAVIGATE
        endpoint, _values, base_url = executor.calls[0]
        assert endpoint.id == USERS.id
        assert base_url == "http://localhost"

    def test_named_lookup_is_saved_and_reused(self, stores):
        lookup = FieldLookup(endpoint_id=USERS.id, method="get", path="/users", value_path="users[].name")
        stores.field_lookups.set("name", lookup)
        form = make_form(stores=stores)
        form.focus = "body:name"

        assert form.save_lookup("people") == lookup
        assert stores.saved_lookups.get("people") == lookup
        assert form.status == "Saved lookup 'people'"

        executor = FakeExecutor(RequestResult(status=200, body={"users": [{"name": "Ana"}]}))
        other = make_form(executor, stores=stores)
        other.focus = "path:id"
        other.use_saved_lookup("people")

        assert stores.field_lookups.get("id") == lookup
        assert other.mode == Mode.LOOKUP_WIZARD
        other.handle_key(ENTER)
        assert other.path_values["id"] == "Ana"

    def test_save_lookup_needs_field_lookup(self, stores):
        form = make_form(stores=stores)
        form.focus = "body:age"

        assert form.save_lookup("ages") is None
        assert form.status == "No lookup on age"
        assert stores.saved_lookups.get_all() == {}

    def test_unknown_named_lookup(self, stores):
        form = make_form(stores=stores)
        form.focus = "body:name"

        with pytest.raises(LookupException):
            form.use_saved_lookup("nope")

    def test_wizard_defines_and_saves_lookup(self, stores):
        executor = FakeExecutor(RequestResult(status=200, body={"users": [{"name": "Ana"}]}))
        form = make_form(executor, stores=stores, endpoints=[ENDPOINT, USERS])
        form.focus = "body:name"

        press(form, "l")
        assert form.wizard.step == LookupStep.ENDPOINT
        form.handle_key(ENTER)
        press(form, "users[].name")
        form.handle_key(ENTER)
        form.handle_key(ENTER)

        assert form.wizard.step == LookupStep.PICK
        assert stores.field_lookups.get("name").value_path == "users[].name"
        form.handle_key(ENTER)
        assert form.body_values["name"] == "Ana"

    def test_failed_lookup_sets_status(self, stores):
        stores.field_lookups.set(
            "name",
            FieldLookup(endpoint_id=USERS.id, method="get", path="/users", value_path="users[].name"),
        )
        form = make_form(FakeExecutor(RequestResult(status=0, error="boom")), stores=stores)
        form.focus = "body:name"

        press(form, "l")

        assert form.status == "Lookup request failed: boom"
        assert form.body_values["name"] == ""
        assert form.lookup_runner.fetching is False

    def test_lookup_rejected_while_submitting(self):
        form = make_form()
        form.fetching = True

        with pytest.raises(FetchInProgress):
            form.run_lookup(
                FieldLookup(endpoint_id=USERS.id, method="get", path="/users", value_path="[]")
            )

    def test_escape_leaves_wizard(self):
        form = make_form(endpoints=[ENDPOINT, USERS])
        form.focus = "body:name"

        press(form, "L")
        form.handle_key(ESCAPE)

        assert form.mode == Mode.NAVIGATE
        assert form.wizard is None


class TestResponseTree:
    def test_no_response(self):
        form = make_form()

        press(form, "t")

        assert form.mode == Mode.NAVIGATE
        assert form.status == "No response to browse"

    def test_browse_and_close(self):
        form = make_form(FakeExecutor(RequestResult(status=200, body={"items": [{"id": "1"}]})))
        form.submit()

        press(form, "t")
        assert form.mode == Mode.TREE_VIEW
        form.handle_key(DOWN)
        assert form.tree.current.path == "root.items"

        form.handle_key(ESCAPE)
        assert form.mode == Mode.NAVIGATE
        assert form.tree is None

    def test_capture_into_variables(self):
        variables = VariableStore()
        form = make_form(
            FakeExecutor(RequestResult(status=200, body={"token": "t0k"})), variables=variables
        )
        form.submit()
        press(form, "t")
        form.tree.move_to(1)

        press(form, "vtok")
        form.handle_key(ENTER)

        assert variables.variables == {"tok": "t0k"}
        assert form.status == '✓ {{tok}} = "t0k"'

    def test_seed_lookup_from_node(self):
        form = make_form(FakeExecutor(RequestResult(status=200, body={"items": [{"id": "1"}]})))
        form.submit()
        press(form, "t")
        form.tree.move_to(3)

        form.handle_key(CTRL_ENTER)

        assert form.mode == Mode.LOOKUP_WIZARD
        assert form.wizard.step == LookupStep.VALUE_PATH
        assert form.wizard.buffer == "items[].id"
        assert form.wizard.endpoint is ENDPOINT


class TestSavedRequests:
    def test_save_through_keys(self, stores):
        form = make_form(stores=stores)
        form.set_value("body:name", "Ana")

        press(form, "s")
        assert form.mode == Mode.SAVE
        press(form, "mine")
        form.handle_key(ENTER)

        saved = stores.saved_requests.get_all()
        assert [s.name for s in saved] == ["mine"]
        assert saved[0].body_field_values == {"name": "Ana"}
        assert form.status == "Saved 'mine'"

    def test_blank_name_is_not_saved(self, stores):
        assert make_form(stores=stores).save_request("  ") is None
        assert stores.saved_requests.get_all() == []

    def test_load_history_entry(self, stores):
        first = make_form(stores=stores)
        first.set_value("path:id", "5")
        first.set_value("headers", '{"X-A": "1"}')
        first.set_value("body:address.city", "Rio")
        first.submit()

        form = make_form()
        form.load_entry(stores.history.get_all()[0])

        assert form.path_values["id"] == "5"
        assert json.loads(form.headers_text) == {"X-A": "1"}
        assert form.body_values["address.city"] == "Rio"

    def test_load_entry_keeps_opaque_leaf_and_null(self, stores):
        deep = Endpoint(
            id="post:/notes",
            method="post",
            path="/notes",
            request_body=RequestBody(schema=DEEP_SCHEMA),
        )
        first = RequestForm(deep, FakeExecutor(), stores=stores)
        first.set_value("body:a.b.c", '{"d":1}')
        first.set_value("body:note", "null")
        first.submit()

        form = RequestForm(deep, FakeExecutor())
        form.load_entry(stores.history.get_all()[0])

        assert form.body_values["a.b.c"] == '{"d":1}'
        assert form.body_values["note"] == "null"
        assert "a.b.c.d" not in form.body_values
        assert json.loads(form.build_request_values().body) == {"a": {"b": {"c": {"d": 1}}}, "note": None}

    def test_load_entry_without_body_schema_uses_snapshot(self, stores):
        first = make_form(stores=stores)
        first.set_value("body:name", "Ana")
        first.submit()

        form = RequestForm(USERS, FakeExecutor())
        form.load_entry(stores.history.get_all()[0])

        assert form.body_values == {"name": "Ana"}


def test_suggest_fills_integer():
    form = make_form()
    form.focus = "body:age"

    press(form, "g")

    assert form.body_values["age"].isdigit()


def test_render():
    form = make_form()
    lines = form.render()

    assert lines[0] == "▶ Base URL: http://localhost"
    assert lines[1] == "  id* (string): "
    assert lines[5] == "  ▾ address"
    assert lines[6] == "    city (string): "
    assert lines[-1] == "  [ Send ]"

    form.toggle_group("address")
    assert form.render()[5] == "  ▸ address"
