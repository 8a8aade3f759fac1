"""Test CLI functionality."""

import json

import pytest
import requests
from click.testing import CliRunner

from openapicmd.cli import cli, find_endpoint
from openapicmd.errors import SpecException
from openapicmd.lookups import FieldLookup
from openapicmd.openapi import parse_spec
from openapicmd.storages import SavedLookupStore

SPEC = {
    "openapi": "3.0.0",
    "info": {"title": "Pets", "version": "1"},
    "servers": [{"url": "http://pets.test"}],
    "paths": {
        "/pets": {
            "get": {"operationId": "listPets", "summary": "List pets"},
            "post": {
                "requestBody": {
                    "content": {
                        "application/json": {
                            "schema": {
                                "type": "object",
                                "required": ["name"],
                                "properties": {
                                    "name": {"type": "string"},
                                    "age": {"type": "integer"},
                                },
                            }
                        }
                    }
                }
            },
        }
    },
}


class FakeResponse:
    status_code = 201
    reason = "Created"
    headers = {"Content-Type": "application/json"}
    text = '{"id": "p1"}'
    content = text.encode()

    def json(self):
        return json.loads(self.text)


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "api.json").write_text(json.dumps(SPEC), encoding="utf-8")
    (tmp_path / "body.json").write_text(
        json.dumps({"data": {"token": "t0k"}, "items": [{"id": 1, "name": "One"}, {"id": 2, "name": "Two"}]}),
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture
def runner():
    return CliRunner()


@pytest.mark.parametrize("ref", ["get:/pets", "GET /pets", "listPets"])
def test_find_endpoint(ref):
    assert find_endpoint(parse_spec(SPEC), ref).id == "get:/pets"


def test_find_endpoint_missing():
    with pytest.raises(SpecException):
        find_endpoint(parse_spec(SPEC), "DELETE /pets")


def test_endpoints(workdir, runner):
    result = runner.invoke(cli, ["endpoints", "api.json"])

    assert result.exit_code == 0
    assert result.output.splitlines() == ["GET\t/pets\tList pets", "POST\t/pets\t"]


def test_endpoints_missing_file(workdir, runner):
    result = runner.invoke(cli, ["endpoints", "nope.json"])

    assert result.exit_code == 1
    assert "API description not found" in result.output


def test_fields(workdir, runner):
    result = runner.invoke(cli, ["fields", "api.json", "POST /pets"])

    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "baseUrl\tstring\t",
        "headers\tstring\t",
        "body:name*\tstring\t",
        "body:age\tinteger\t",
    ]


class TestSend:
    def test_send(self, workdir, runner, monkeypatch):
        calls = []

        def fake_request(method, url, **kwargs):
            calls.append((method, url, kwargs))
            return FakeResponse()

        monkeypatch.setattr("openapicmd.executor.requests.request", fake_request)

        result = runner.invoke(
            cli, ["send", "api.json", "POST /pets", "--set", "name=Rex", "--set", "age=3", "--curl"]
        )

        assert result.exit_code == 0
        method, url, kwargs = calls[0]
        assert (method, url) == ("POST", "http://pets.test/pets")
        assert json.loads(kwargs["data"]) == {"name": "Rex", "age": 3}
        assert "curl -X POST" in result.output
        assert "201 Created" in result.output
        assert '"id": "p1"' in result.output
        history = json.loads((workdir / "data" / "history.json").read_text(encoding="utf-8"))
        assert history[0]["endpoint_id"] == "post:/pets"

    def test_base_url_option(self, workdir, runner, monkeypatch):
        urls = []
        monkeypatch.setattr(
            "openapicmd.executor.requests.request",
            lambda method, url, **kwargs: urls.append(url) or FakeResponse(),
        )

        runner.invoke(cli, ["send", "api.json", "listPets", "--base-url", "http://other"])

        assert urls == ["http://other/pets"]

    def test_network_error_exits_nonzero(self, workdir, runner, monkeypatch):
        def fail(method, url, **kwargs):
            raise requests.ConnectionError("down")

        monkeypatch.setattr("openapicmd.executor.requests.request", fail)

        result = runner.invoke(cli, ["send", "api.json", "listPets"])

        assert result.exit_code == 1
        assert "Error: down" in result.output

    def test_unknown_field(self, workdir, runner):
        result = runner.invoke(cli, ["send", "api.json", "POST /pets", "--set", "color=red"])

        assert result.exit_code == 2
        assert "Unknown field" in result.output

    def test_unknown_environment(self, workdir, runner):
        result = runner.invoke(cli, ["send", "api.json", "listPets", "--env", "staging"])

        assert result.exit_code == 1
        assert "Environment not found: staging" in result.output

    def test_unknown_endpoint(self, workdir, runner):
        result = runner.invoke(cli, ["send", "api.json", "DELETE /pets"])

        assert result.exit_code == 1
        assert "Endpoint not found" in result.output


def test_tree(workdir, runner):
    result = runner.invoke(cli, ["tree", "body.json", "--collapse", "root.items"])

    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "> ▼ root: {",
        "    ▼ data: {",
        '        token: "t0k"',
        "    ▶ items: [ 2 items ]",
    ]


def test_tree_search(workdir, runner):
    result = runner.invoke(cli, ["tree", "body.json", "--search", "two"])

    assert result.output.splitlines() == ["root.items[1].name", "Match 1/1"]


def test_lookup(workdir, runner):
    result = runner.invoke(cli, ["lookup", "body.json", "items[].id", "--label", "items[].name"])

    assert result.output.splitlines() == ["1\tOne", "2\tTwo"]


def test_capture(workdir, runner):
    (workdir / "config.toml").write_text('[[environments]]\nname = "dev"\n', encoding="utf-8")

    result = runner.invoke(cli, ["capture", "body.json", "root.data.token", "token", "--env", "dev"])

    assert result.exit_code == 0
    assert result.output.strip() == '✓ {{token}} = "t0k"'
    assert 'token = "t0k"' in (workdir / "config.toml").read_text(encoding="utf-8")


def test_capture_unknown_path(workdir, runner):
    result = runner.invoke(cli, ["capture", "body.json", "root.nope", "x", "--env", "dev"])

    assert result.exit_code == 1
    assert "Path not found" in result.output


class TestHistory:
    @pytest.fixture
    def sent(self, workdir, runner, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "openapicmd.executor.requests.request",
            lambda method, url, **kwargs: calls.append(kwargs) or FakeResponse(),
        )
        runner.invoke(cli, ["send", "api.json", "POST /pets", "--set", "name=Rex"])
        return calls

    def test_list(self, sent, runner):
        result = runner.invoke(cli, ["history"])

        assert result.exit_code == 0
        entry_id, when, request, outcome = result.output.splitlines()[0].split("\t")
        assert when == "just now"
        assert request == "POST /pets"
        assert outcome == "201 Created"

    def test_replay(self, sent, runner):
        entry_id = runner.invoke(cli, ["history"]).output.split("\t")[0]

        result = runner.invoke(cli, ["send", "api.json", "POST /pets", "--replay", entry_id, "--set", "age=4"])

        assert result.exit_code == 0
        assert json.loads(sent[-1]["data"]) == {"name": "Rex", "age": 4}

    def test_replay_unknown_entry(self, sent, runner):
        result = runner.invoke(cli, ["send", "api.json", "POST /pets", "--replay", "nope"])

        assert result.exit_code == 1
        assert "History entry not found" in result.output

    def test_clear(self, sent, runner):
        assert runner.invoke(cli, ["history", "--clear"]).output == "History cleared\n"
        assert runner.invoke(cli, ["history"]).output == ""


def test_recent_specs(workdir, runner):
    runner.invoke(cli, ["endpoints", "api.json"])
    runner.invoke(cli, ["fields", "api.json", "POST /pets"])
    runner.invoke(cli, ["endpoints", "nope.json"])

    result = runner.invoke(cli, ["recent"])

    assert result.exit_code == 0
    assert result.output.splitlines() == ["api.json"]
    assert 'recent_specs = ["api.json"]' in (workdir / "config.toml").read_text(encoding="utf-8")


def test_lookups(workdir, runner):
    SavedLookupStore(workdir / "data").set(
        "people",
        FieldLookup(endpoint_id="get:/pets", method="get", path="/pets", value_path="[].id", label_path="[].name"),
    )

    result = runner.invoke(cli, ["lookups"])

    assert result.exit_code == 0
    assert result.output.splitlines() == ["people\tGET /pets\t[].id\t[].name"]
    assert runner.invoke(cli, ["lookups", "--remove", "people"]).output == "Removed lookup 'people'\n"
    assert runner.invoke(cli, ["lookups"]).output == ""
