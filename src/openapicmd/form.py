"""Request form: navigation and edit state machine over one endpoint.

The form owns the flat value maps of one endpoint session (base URL, path and
query parameters, headers text and body fields), the collapse set of body
groups, and exactly one active ``Mode``. Every key goes through
``handle_key``; failures inside a handler become a ``status`` message and
leave values untouched.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional
from urllib.parse import parse_qsl, urlsplit

from pydantic import BaseModel, Field

from .config import Environment, FormSettings
from .consts import (
    BODY_GROUP_PREFIX,
    BODY_PREFIX,
    FIELD_BASE_URL,
    FIELD_HEADERS,
    FIELD_SUBMIT,
    NULL_LITERAL,
    PATH_PREFIX,
    QUERY_PREFIX,
)
from .curl_parser import extract_path_params, parse_curl
from .editors import EditState, FieldEditor, TextEditor, select_editor
from .enums import KeyName, LookupStep, Mode, ParameterLocation
from .errors import FetchInProgress, ImportException, LookupException, OpenapicmdException
from .executor import RequestResult, RequestValues
from .fields import FieldDescriptor, build_fields, find_field, initial_values
from .generators import generate, suggest_for_field
from .keys import Key
from .lookups import FieldLookup, LookupRunner, LookupWizard
from .openapi import Endpoint
from .pagination import detect_next_cursor, detect_next_page_url
from .serializer import deserialize, get_nested, is_hidden, serialize_text
from .storages import Stores
from .storages.history import HistoryEntry, ResultSummary, SavedRequest
from .tree import JsonTree
from .utils import truncate
from .variables import VariableStore, clear, has_variable, insert, resolve, resolve_all, smart_fill

logger = logging.getLogger(__name__)

SubmitExecutor = Callable[[Endpoint, RequestValues, str], RequestResult]


class FormSnapshot(BaseModel):
    base_url: str = ""
    path_values: dict[str, str] = Field(default_factory=dict)
    query_values: dict[str, str] = Field(default_factory=dict)
    headers_text: str = ""
    body_values: dict[str, str] = Field(default_factory=dict)
    collapsed: list[str] = Field(default_factory=list)


class FormCache:
    """Form values per endpoint id, owned by the caller's session."""

    def __init__(self):
        self._entries: dict[str, FormSnapshot] = {}

    def get(self, endpoint_id: str) -> FormSnapshot | None:
        return self._entries.get(endpoint_id)

    def set(self, endpoint_id: str, snapshot: FormSnapshot) -> None:
        self._entries[endpoint_id] = snapshot

    def clear(self, endpoint_id: str) -> None:
        self._entries.pop(endpoint_id, None)


class RequestForm:
    def __init__(
        self,
        endpoint: Endpoint,
        executor: SubmitExecutor,
        *,
        env: Optional[Environment] = None,
        fallback_base_url: str = "",
        variables: Optional[VariableStore] = None,
        stores: Optional[Stores] = None,
        cache: Optional[FormCache] = None,
        settings: Optional[FormSettings] = None,
        endpoints: Optional[list[Endpoint]] = None,
    ):
        self.endpoint = endpoint
        self.executor = executor
        self.env = env
        self.variables = variables if variables is not None else VariableStore()
        self.stores = stores
        self.cache = cache
        self.settings = settings or FormSettings()
        self.endpoints = endpoints or [endpoint]

        self.path_params = endpoint.params_in(ParameterLocation.PATH)
        self.query_params = endpoint.params_in(ParameterLocation.QUERY)

        schema = endpoint.request_body.schema_ if endpoint.request_body else None
        self.body_fields: list[FieldDescriptor] = (
            build_fields(schema, max_depth=self.settings.max_depth) if schema else []
        )

        cached = cache.get(endpoint.id) if cache else None
        if cached is not None:
            self.base_url = cached.base_url
            self.path_values = dict(cached.path_values)
            self.query_values = dict(cached.query_values)
            self.headers_text = cached.headers_text
            self.body_values = dict(cached.body_values)
            self.collapsed = set(cached.collapsed)
        else:
            self.base_url = env.base_url if env and env.base_url else fallback_base_url
            self.path_values = {p.name: p.default or "" for p in self.path_params}
            self.query_values = {p.name: p.default or "" for p in self.query_params}
            self.headers_text = ""
            self.body_values = initial_values(schema, self.settings.max_depth)
            self.collapsed: set[str] = set()

        self.mode = Mode.NAVIGATE
        self.focus = FIELD_BASE_URL
        self.scroll = 0
        self.edit_state = EditState()
        self._editors: dict[str, FieldEditor] = {}

        self.fetching = False
        self.lookup_runner = LookupRunner(self._lookup_executor)
        self.result: RequestResult | None = None
        self.status = ""
        self.closed = False

        self.picker_cursor = 0
        self.wizard: LookupWizard | None = None
        self.tree: JsonTree | None = None
        self.buffer = ""

    # ---- field ids --------------------------------------------------------

    @property
    def navigable(self) -> list[str]:
        """Focusable ids: base fields, visible body fields, then submit."""
        ids = [FIELD_BASE_URL]
        ids += [PATH_PREFIX + p.name for p in self.path_params]
        ids += [QUERY_PREFIX + p.name for p in self.query_params]
        ids.append(FIELD_HEADERS)
        for f in self.body_fields:
            if is_hidden(f.full_key, self.collapsed):
                continue
            ids.append((BODY_GROUP_PREFIX if f.is_group_header else BODY_PREFIX) + f.full_key)
        ids.append(FIELD_SUBMIT)
        return ids

    def descriptor(self, field_id: str) -> FieldDescriptor | None:
        if field_id.startswith(BODY_PREFIX):
            return find_field(self.body_fields, field_id[len(BODY_PREFIX):])
        if field_id.startswith(BODY_GROUP_PREFIX):
            return find_field(self.body_fields, field_id[len(BODY_GROUP_PREFIX):])
        for prefix, params in ((PATH_PREFIX, self.path_params), (QUERY_PREFIX, self.query_params)):
            if field_id.startswith(prefix):
                name = field_id[len(prefix):]
                return next((p.to_field() for p in params if p.name == name), None)
        if field_id in (FIELD_BASE_URL, FIELD_HEADERS):
            label = "Base URL" if field_id == FIELD_BASE_URL else "Headers"
            return FieldDescriptor(label=label, full_key=field_id, type="string")
        return None

    def get_value(self, field_id: str) -> str:
        if field_id == FIELD_BASE_URL:
            return self.base_url
        if field_id == FIELD_HEADERS:
            return self.headers_text
        if field_id.startswith(PATH_PREFIX):
            return self.path_values.get(field_id[len(PATH_PREFIX):], "")
        if field_id.startswith(QUERY_PREFIX):
            return self.query_values.get(field_id[len(QUERY_PREFIX):], "")
        if field_id.startswith(BODY_PREFIX):
            return self.body_values.get(field_id[len(BODY_PREFIX):], "")
        return ""

    def set_value(self, field_id: str, value: str) -> None:
        if field_id == FIELD_BASE_URL:
            self.base_url = value
        elif field_id == FIELD_HEADERS:
            self.headers_text = value
        elif field_id.startswith(PATH_PREFIX):
            self.path_values[field_id[len(PATH_PREFIX):]] = value
        elif field_id.startswith(QUERY_PREFIX):
            self.query_values[field_id[len(QUERY_PREFIX):]] = value
        elif field_id.startswith(BODY_PREFIX):
            self.body_values[field_id[len(BODY_PREFIX):]] = value
        else:
            return
        self.remember()

    def is_editable(self, field_id: str) -> bool:
        if field_id == FIELD_SUBMIT or field_id.startswith(BODY_GROUP_PREFIX):
            return False
        if field_id == FIELD_BASE_URL and self.env is not None and self.env.base_url:
            return False
        return True

    def editor(self, field_id: str) -> FieldEditor:
        if field_id not in self._editors:
            field = self.descriptor(field_id)
            self._editors[field_id] = select_editor(field) if field else TextEditor()
        return self._editors[field_id]

    @property
    def effective_base_url(self) -> str:
        if self.env is not None and self.env.base_url:
            return self.env.base_url
        return self.base_url.strip()

    # ---- navigation -------------------------------------------------------

    def move_focus(self, step: int) -> None:
        """Circular focus movement; moving forward may smart-fill the field left behind."""
        ids = self.navigable
        index = ids.index(self.focus) if self.focus in ids else 0
        if step > 0:
            self._smart_fill(self.focus)
        self.focus = ids[(index + step) % len(ids)]
        self._follow(ids.index(self.focus))

    def _follow(self, index: int) -> None:
        viewport = self.settings.viewport
        if index < self.scroll:
            self.scroll = index
        elif index >= self.scroll + viewport:
            self.scroll = index - viewport + 1

    def _smart_fill(self, field_id: str) -> None:
        # Overwrites without confirmation and there is no undo.
        if not self.settings.smart_fill:
            return
        if field_id in (FIELD_BASE_URL, FIELD_HEADERS, FIELD_SUBMIT):
            return
        if field_id.startswith(BODY_GROUP_PREFIX) or self.get_value(field_id):
            return
        field = self.descriptor(field_id)
        if field is None:
            return
        patterns = self.stores.patterns.get_all() if self.stores else {}
        value = smart_fill(field, self.variables.variables, patterns)
        if value is not None:
            self.set_value(field_id, value)
            logger.debug(f"Smart fill {field_id} = {value}")

    def toggle_group(self, group_key: str) -> None:
        if group_key in self.collapsed:
            self.collapsed.discard(group_key)
        else:
            self.collapsed.add(group_key)
        self.remember()

    def activate(self) -> None:
        """Enter on the focused field in Navigate mode."""
        focus = self.focus
        if focus == FIELD_SUBMIT:
            self.submit()
        elif focus.startswith(BODY_GROUP_PREFIX):
            self.toggle_group(focus[len(BODY_GROUP_PREFIX):])
        elif not self.is_editable(focus):
            self.move_focus(1)
        else:
            editor = self.editor(focus)
            self.set_value(focus, editor.begin(self.get_value(focus), self.edit_state))
            self.mode = Mode.EDIT

    def confirm_edit(self) -> None:
        self.mode = Mode.NAVIGATE
        self.edit_state.reset()
        self.move_focus(1)

    def cancel_edit(self) -> None:
        self.mode = Mode.NAVIGATE
        self.edit_state.reset()

    # ---- variables, generators --------------------------------------------

    def open_variable_picker(self) -> None:
        if not self.is_editable(self.focus):
            return
        if not self.variables.variables:
            self.status = "No variables defined"
            return
        self.picker_cursor = 0
        self.mode = Mode.VARIABLE_PICKER

    def insert_variable(self, name: str) -> None:
        self.set_value(self.focus, insert(self.get_value(self.focus), name))
        self.mode = Mode.NAVIGATE

    def clear_variable(self) -> None:
        if has_variable(self.get_value(self.focus)):
            self.set_value(self.focus, clear(self.get_value(self.focus)))

    def apply_generator(self, generator_id: str, train: bool = True) -> str | None:
        """Fill the focused field from a generator and remember the choice for its label."""
        value = generate(generator_id)
        field = self.descriptor(self.focus)
        if value is None or field is None or not self.is_editable(self.focus):
            return None
        self.set_value(self.focus, value)
        if train and self.stores is not None:
            self.stores.patterns.set(field.label, generator_id)
        return value

    def suggest(self) -> None:
        field = self.descriptor(self.focus)
        if field is None or not self.is_editable(self.focus):
            return
        value = suggest_for_field(field.label, field.type, field.format, field.enum_values)
        if value is None:
            self.status = f"No suggestion for {field.label}"
        else:
            self.set_value(self.focus, value)

    # ---- lookups ----------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self.fetching or self.lookup_runner.fetching

    def _lookup_executor(self, endpoint: Endpoint, values: RequestValues) -> RequestResult:
        variables = self.variables.variables
        resolved = values.model_copy(
            update={
                "query_params": resolve_all(values.query_params, variables),
                "body": resolve(values.body, variables),
            }
        )
        return self.executor(endpoint, resolved, self.effective_base_url)

    def run_lookup(self, lookup: FieldLookup) -> None:
        """Fetch options and show them for picking."""
        if self.fetching:
            raise FetchInProgress("A request is already in progress")
        options = self.lookup_runner.run(lookup)
        if self.wizard is None:
            self.wizard = LookupWizard(endpoints=self.endpoints)
        self.wizard.show_options(options)
        self.mode = Mode.LOOKUP_WIZARD

    def start_lookup(self) -> None:
        field = self.descriptor(self.focus)
        if field is None or not self.is_editable(self.focus):
            return
        saved = self.stores.field_lookups.get(field.label) if self.stores else None
        if saved is None:
            self.open_lookup_wizard()
        else:
            self.wizard = None
            self.run_lookup(saved)

    def open_lookup_wizard(self, value_path: str = "") -> None:
        candidates = [e for e in self.endpoints if e.method == "get"] or self.endpoints
        self.wizard = LookupWizard(endpoints=candidates)
        if value_path:
            self.wizard.endpoint = self.endpoint
            self.wizard.step = LookupStep.VALUE_PATH
            self.wizard.seed_value_path(value_path)
        self.mode = Mode.LOOKUP_WIZARD

    def _finish_wizard(self, lookup: FieldLookup) -> None:
        field = self.descriptor(self.focus)
        if self.stores is not None and field is not None:
            self.stores.field_lookups.set(field.label, lookup)
        self.run_lookup(lookup)

    def save_lookup(self, name: str) -> FieldLookup | None:
        """Keep the focused field's lookup as a reusable definition under ``name``."""
        name = name.strip()
        field = self.descriptor(self.focus)
        if not name or self.stores is None or field is None:
            return None
        lookup = self.stores.field_lookups.get(field.label)
        if lookup is None:
            self.status = f"No lookup on {field.label}"
            return None
        self.stores.saved_lookups.set(name, lookup)
        self.status = f"Saved lookup '{name}'"
        return lookup

    def use_saved_lookup(self, name: str) -> None:
        """Attach a named lookup to the focused field and fetch its options.

        Raises:
            LookupException: no lookup is saved under ``name``
        """
        lookup = self.stores.saved_lookups.get(name) if self.stores else None
        if lookup is None:
            raise LookupException(f"Saved lookup not found: {name}")
        field = self.descriptor(self.focus)
        if field is not None and self.is_editable(self.focus):
            self.stores.field_lookups.set(field.label, lookup)
        self.wizard = None
        self.run_lookup(lookup)

    def pick_option(self) -> None:
        option = self.wizard.selected() if self.wizard else None
        if option is not None:
            self.set_value(self.focus, option.value)
            self.status = f"Selected {option.label}"
        self.wizard = None
        self.mode = Mode.NAVIGATE

    # ---- response tree ----------------------------------------------------

    def open_tree(self) -> None:
        if self.result is None or self.result.body is None:
            self.status = "No response to browse"
            return
        self.tree = JsonTree(self.result.body, viewport=self.settings.viewport)
        self.mode = Mode.TREE_VIEW

    # ---- import -----------------------------------------------------------

    def parse_import(self, text: str) -> dict[str, Any]:
        """Compute the value changes for pasted text without applying them.

        Raises:
            ImportException: the text is neither a curl command nor a JSON object
        """
        text = text.strip()
        if text.startswith("curl"):
            parsed = parse_curl(text)
            if parsed is None:
                raise ImportException("Could not parse curl command")
            changes: dict[str, Any] = {
                "path_values": {
                    **self.path_values,
                    **extract_path_params(self.endpoint.path, parsed.path),
                },
                "query_values": {**self.query_values, **parsed.query_params},
            }
            if parsed.headers:
                changes["headers_text"] = json.dumps(parsed.headers, ensure_ascii=False)
            if parsed.body_json is not None:
                changes["body_values"] = {
                    **self.body_values,
                    **deserialize(self.body_fields, parsed.body_json),
                }
            if self.env is None or not self.env.base_url:
                changes["base_url"] = parsed.origin
            return changes

        try:
            data = json.loads(text)
        except ValueError as e:
            raise ImportException(f"Invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ImportException("Imported JSON must be an object")
        return {"body_values": {**self.body_values, **deserialize(self.body_fields, data)}}

    def apply_import(self, text: str) -> None:
        changes = self.parse_import(text)
        for name, value in changes.items():
            setattr(self, name, value)
        self.remember()
        self.status = "Imported"
        self.mode = Mode.NAVIGATE

    # ---- submission -------------------------------------------------------

    def parsed_headers(self) -> dict[str, str]:
        text = resolve(self.headers_text, self.variables.variables).strip()
        if not text:
            return {}
        try:
            data = json.loads(text)
        except ValueError:
            logger.warning("Headers are not a JSON object, ignoring")
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def build_request_values(self) -> RequestValues:
        """Assemble the outgoing request with variables resolved."""
        variables = self.variables.variables
        body = ""
        if self.body_fields:
            body = serialize_text(
                self.body_fields, resolve_all(self.body_values, variables), self.collapsed
            )
        return RequestValues(
            path_params=resolve_all(self.path_values, variables),
            query_params=resolve_all(self.query_values, variables),
            headers=self.parsed_headers(),
            body=body,
        )

    def submit(self) -> RequestResult:
        if self.busy:
            raise FetchInProgress("A request is already in progress")

        values = self.build_request_values()
        self.mode = Mode.NAVIGATE
        self.fetching = True
        try:
            result = self.executor(self.endpoint, values, self.effective_base_url)
        finally:
            self.fetching = False

        self.result = result
        if result.error:
            self.status = f"Error: {result.error}"
        else:
            self.status = f"{result.status} {result.status_text} ({result.duration_ms}ms)"

        if self.stores is not None:
            self.stores.history.add(
                self.endpoint.id,
                self.endpoint.method,
                self.endpoint.path,
                self.env.name if self.env else None,
                values,
                ResultSummary.of(result),
            )
        self.remember()
        return result

    def apply_next_page(self) -> bool:
        """Copy the next-page cursor (or next URL query) of the last response into the query."""
        body = self.result.body if self.result else None
        cursor = detect_next_cursor(body)
        if cursor is not None:
            self.query_values[cursor.query_param] = cursor.value
            self.status = f"Next page: {cursor.query_param}={truncate(cursor.value, 40)}"
            self.remember()
            return True
        url = detect_next_page_url(body)
        if url is not None:
            self.query_values.update(parse_qsl(urlsplit(url).query, keep_blank_values=True))
            self.status = f"Next page: {truncate(url, 60)}"
            self.remember()
            return True
        self.status = "No next page"
        return False

    # ---- history, saved requests, cache -----------------------------------

    def load_entry(self, entry: HistoryEntry | SavedRequest) -> None:
        """Restore a history entry or saved request into the form."""
        self.path_values.update(entry.values.path_params)
        self.query_values.update(entry.values.query_params)
        self.headers_text = (
            json.dumps(entry.values.headers, ensure_ascii=False) if entry.values.headers else ""
        )
        self.body_values.update(self._stored_body_values(entry))
        self.remember()

    def _stored_body_values(self, entry: HistoryEntry | SavedRequest) -> dict[str, str]:
        """Body field values of a stored request, rebuilt against this form's fields.

        The flat snapshot is only used when the form has no body schema or the
        stored body is not JSON.
        """
        if not self.body_fields or not entry.values.body.strip():
            return entry.body_field_values
        try:
            body = json.loads(entry.values.body)
        except ValueError:
            return entry.body_field_values

        values = deserialize(self.body_fields, body)
        # deserialize skips nulls; a replay keeps them
        for f in self.body_fields:
            if not f.is_group_header and get_nested(body, f.full_key) is None:
                values[f.full_key] = NULL_LITERAL
        return values

    def save_request(self, name: str) -> SavedRequest | None:
        name = name.strip()
        if not name or self.stores is None:
            return None
        saved = self.stores.saved_requests.save(
            name,
            self.endpoint.id,
            self.endpoint.method,
            self.endpoint.path,
            self.env.name if self.env else None,
            self.build_request_values(),
        )
        self.status = f"Saved '{name}'"
        self.mode = Mode.NAVIGATE
        return saved

    def snapshot(self) -> FormSnapshot:
        return FormSnapshot(
            base_url=self.base_url,
            path_values=dict(self.path_values),
            query_values=dict(self.query_values),
            headers_text=self.headers_text,
            body_values=dict(self.body_values),
            collapsed=sorted(self.collapsed),
        )

    def remember(self) -> None:
        if self.cache is not None:
            self.cache.set(self.endpoint.id, self.snapshot())

    # ---- input ------------------------------------------------------------

    def handle_key(self, key: Key) -> None:
        try:
            match self.mode:
                case Mode.EDIT:
                    self._handle_edit(key)
                case Mode.VARIABLE_PICKER:
                    self._handle_picker(key)
                case Mode.LOOKUP_WIZARD:
                    self._handle_wizard(key)
                case Mode.TREE_VIEW:
                    self._handle_tree(key)
                case Mode.IMPORT | Mode.SAVE:
                    self._handle_buffer(key)
                case _:
                    self._handle_navigate(key)
        except OpenapicmdException as e:
            logger.warning(f"{type(e).__name__}: {e}")
            self.status = str(e)

    def _handle_navigate(self, key: Key) -> None:
        match key:
            case Key(name=KeyName.ESCAPE):
                self.remember()
                self.closed = True
            case Key(name=KeyName.ENTER, ctrl=True):
                self.submit()
            case Key(name=KeyName.ENTER):
                self.activate()
            case Key(name=KeyName.TAB, shift=True) | Key(name=KeyName.UP):
                self.move_focus(-1)
            case Key(name=KeyName.TAB) | Key(name=KeyName.DOWN):
                self.move_focus(1)
            case Key(char="v", name=None):
                self.open_variable_picker()
            case Key(char="x", name=None):
                self.clear_variable()
            case Key(char="l", name=None):
                self.start_lookup()
            case Key(char="L", name=None):
                self.open_lookup_wizard()
            case Key(char="g", name=None):
                self.suggest()
            case Key(char="t", name=None):
                self.open_tree()
            case Key(char="n", name=None):
                self.apply_next_page()
            case Key(char="i", name=None):
                self.buffer = ""
                self.mode = Mode.IMPORT
            case Key(char="s", name=None):
                self.buffer = ""
                self.mode = Mode.SAVE

    def _handle_edit(self, key: Key) -> None:
        if key.is_(KeyName.ENTER) and key.ctrl:
            self.submit()
        elif key.is_(KeyName.ENTER):
            self.confirm_edit()
        elif key.is_(KeyName.ESCAPE):
            self.cancel_edit()
        else:
            editor = self.editor(self.focus)
            self.set_value(self.focus, editor.handle(self.get_value(self.focus), key, self.edit_state))

    def _handle_picker(self, key: Key) -> None:
        names = list(self.variables.variables)
        if key.is_(KeyName.ESCAPE) or not names:
            self.mode = Mode.NAVIGATE
        elif key.is_(KeyName.UP):
            self.picker_cursor = max(0, self.picker_cursor - 1)
        elif key.is_(KeyName.DOWN):
            self.picker_cursor = min(len(names) - 1, self.picker_cursor + 1)
        elif key.is_(KeyName.ENTER):
            self.insert_variable(names[min(self.picker_cursor, len(names) - 1)])

    def _handle_wizard(self, key: Key) -> None:
        wizard = self.wizard
        if wizard is None or key.is_(KeyName.ESCAPE):
            self.wizard = None
            self.mode = Mode.NAVIGATE
            return

        if key.is_(KeyName.UP):
            wizard.move(-1)
        elif key.is_(KeyName.DOWN):
            wizard.move(1)
        elif key.is_(KeyName.ENTER):
            if wizard.step == LookupStep.PICK:
                self.pick_option()
                return
            lookup = wizard.confirm()
            if lookup is not None:
                self._finish_wizard(lookup)
        elif key.is_delete:
            wizard.backspace()
        elif key.is_char:
            wizard.type_char(key.char)

    def _handle_tree(self, key: Key) -> None:
        tree = self.tree
        if tree is None:
            self.mode = Mode.NAVIGATE
            return
        if key.is_(KeyName.ENTER) and key.ctrl:
            # seed a lookup on this endpoint from the selected node
            path = tree.lookup_path()
            self.tree = None
            self.open_lookup_wizard(value_path=path)
            return
        tree.handle_key(key, self.variables)
        if tree.status:
            self.status = tree.status
        if tree.closed:
            self.tree = None
            self.mode = Mode.NAVIGATE

    def _handle_buffer(self, key: Key) -> None:
        if key.is_(KeyName.ESCAPE):
            self.buffer = ""
            self.mode = Mode.NAVIGATE
        elif key.is_(KeyName.ENTER):
            text, self.buffer = self.buffer, ""
            if self.mode == Mode.IMPORT:
                self.mode = Mode.NAVIGATE
                self.apply_import(text)
            else:
                self.save_request(text)
                self.mode = Mode.NAVIGATE
        elif key.is_delete:
            self.buffer = self.buffer[:-1]
        elif key.is_char:
            self.buffer += key.char

    # ---- rendering --------------------------------------------------------

    def display_value(self, field_id: str) -> str:
        """Value as shown: variables resolved, editor formatting applied."""
        value = self.get_value(field_id)
        if has_variable(value):
            return resolve(value, self.variables.variables)
        state = self.edit_state if self.mode == Mode.EDIT and field_id == self.focus else None
        return self.editor(field_id).display(value, state)

    def label(self, field_id: str) -> str:
        if field_id == FIELD_SUBMIT:
            return "[ Send ]"
        field = self.descriptor(field_id)
        if field is None:
            return field_id
        text = "  " * field.indent + field.label
        if field.required:
            text += "*"
        return f"{text} ({field.type})" if field_id.startswith((BODY_PREFIX, PATH_PREFIX, QUERY_PREFIX)) else text

    def render(self) -> list[str]:
        ids = self.navigable
        lines = []
        for field_id in ids[self.scroll : self.scroll + self.settings.viewport]:
            marker = "▶ " if field_id == self.focus else "  "
            if field_id == FIELD_SUBMIT:
                lines.append(marker + self.label(field_id))
            elif field_id.startswith(BODY_GROUP_PREFIX):
                key = field_id[len(BODY_GROUP_PREFIX):]
                arrow = "▸" if key in self.collapsed else "▾"
                lines.append(f"{marker}{arrow} {self.label(field_id)}")
            else:
                lines.append(f"{marker}{self.label(field_id)}: {self.display_value(field_id)}")
        return lines
