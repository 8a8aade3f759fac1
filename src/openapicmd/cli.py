"""CLI main entry point."""

import json
import logging
from pathlib import Path

import click

from .config import Config
from .errors import OpenapicmdException, SpecException
from .executor import TokenCache, bind_executor
from .form import RequestForm
from .log import setup as setup_log
from .lookups import extract_options
from .openapi import Endpoint, ParsedSpec, load_spec
from .storages import EnvironmentStore, get_stores
from .tree import JsonTree, build_visible
from .utils import relative_time
from .variables import VariableStore

logger = logging.getLogger(__name__)


def find_endpoint(spec: ParsedSpec, ref: str) -> Endpoint:
    """Endpoint by id (``get:/users``), ``"GET /users"`` or operationId."""
    method, _, path = ref.strip().partition(" ")
    candidates = {ref, f"{method.lower()}:{path.strip()}"}
    for endpoint in spec.endpoints:
        if endpoint.id in candidates or endpoint.operation_id == ref:
            return endpoint
    raise SpecException(f"Endpoint not found: {ref}")


def load_json_file(path: str):
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Cannot read JSON from {path}: {e}")


def open_spec(config_path: str, cfg: Config, source: str) -> ParsedSpec:
    """Load an API description and put it at the top of the recent list."""
    parsed = load_spec(source, cfg.request.timeout)
    EnvironmentStore(config_path, cfg).add_recent_spec(source)
    return parsed


def apply_assignment(form: RequestForm, assignment: str) -> None:
    """``key=value`` where key is a field id (``path:id``, ``query:q``, ``headers``) or a body key."""
    key, sep, value = assignment.partition("=")
    if not sep:
        raise click.BadParameter(f"Expected key=value, got '{assignment}'")
    field_id = key if key in form.navigable else f"body:{key}"
    if field_id not in form.navigable and not form.descriptor(field_id):
        raise click.BadParameter(f"Unknown field '{key}'")
    form.set_value(field_id, value)


@click.group()
@click.option("--config", "-c", default="config.toml", help="Configuration file path")
@click.pass_context
def cli(ctx, config: str):
    """openapicmd - explore an API description and send requests from the terminal."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    setup_log()


@cli.command(name="endpoints")
@click.argument("spec")
@click.pass_context
def endpoints(ctx, spec: str):
    """List the endpoints of an API description."""
    config_path = ctx.obj["config_path"]
    try:
        cfg = Config.load_or_default(config_path)
        parsed = open_spec(config_path, cfg, spec)
    except OpenapicmdException as e:
        logger.error(f"Application error: {e}", exc_info=True)
        raise click.ClickException(str(e))

    for endpoint in parsed.endpoints:
        click.echo(f"{endpoint.method.upper()}\t{endpoint.path}\t{endpoint.summary or ''}")


@cli.command(name="fields")
@click.argument("spec")
@click.argument("endpoint")
@click.pass_context
def fields(ctx, spec: str, endpoint: str):
    """Show the form fields of one endpoint."""
    config_path = ctx.obj["config_path"]
    try:
        cfg = Config.load_or_default(config_path)
        target = find_endpoint(open_spec(config_path, cfg, spec), endpoint)
    except OpenapicmdException as e:
        logger.error(f"Application error: {e}", exc_info=True)
        raise click.ClickException(str(e))

    form = RequestForm(target, bind_executor(), settings=cfg.form)
    for field_id in form.navigable[:-1]:
        field = form.descriptor(field_id)
        required = "*" if field and field.required else ""
        type_ = field.type if field else ""
        click.echo(f"{field_id}{required}\t{type_}\t{form.get_value(field_id)}")


@cli.command(name="send")
@click.argument("spec")
@click.argument("endpoint")
@click.option("--set", "assignments", multiple=True, help="Field value as key=value")
@click.option("--env", "env_name", default=None, help="Environment name")
@click.option("--base-url", default=None, help="Base URL when no environment provides one")
@click.option("--curl", "show_curl", is_flag=True, help="Print the equivalent curl command")
@click.option("--replay", default=None, help="History entry id whose values are loaded first")
@click.pass_context
def send(ctx, spec, endpoint, assignments, env_name, base_url, show_curl, replay):
    """Fill an endpoint's form and send the request."""
    config_path = ctx.obj["config_path"]
    try:
        cfg = Config.load_or_default(config_path)
        parsed = open_spec(config_path, cfg, spec)
        target = find_endpoint(parsed, endpoint)

        env = cfg.get_environment(env_name)
        if env_name and env is None:
            raise click.ClickException(f"Environment not found: {env_name}")
        variables = EnvironmentStore(config_path, cfg, env.name) if env else VariableStore()

        form = RequestForm(
            target,
            bind_executor(env, TokenCache(), cfg.request),
            env=env,
            fallback_base_url=base_url or (parsed.servers[0] if parsed.servers else ""),
            variables=variables,
            stores=get_stores(config=cfg),
            settings=cfg.form,
            endpoints=parsed.endpoints,
        )
        if replay:
            entry = form.stores.history.get(replay)
            if entry is None:
                raise click.ClickException(f"History entry not found: {replay}")
            form.load_entry(entry)
        for assignment in assignments:
            apply_assignment(form, assignment)

        result = form.submit()
    except OpenapicmdException as e:
        logger.error(f"Application error: {e}", exc_info=True)
        raise click.ClickException(str(e))

    if show_curl and result.curl_command:
        click.echo(result.curl_command)
    if result.token_error:
        click.echo(f"Token error: {result.token_error}", err=True)
    click.echo(form.status)
    if result.body is not None:
        if isinstance(result.body, str):
            click.echo(result.body)
        else:
            click.echo(json.dumps(result.body, indent=2, ensure_ascii=False))
    if result.error:
        ctx.exit(1)


@cli.command(name="history")
@click.option("--clear", is_flag=True, help="Delete all history entries")
@click.pass_context
def history(ctx, clear):
    """List recent submissions, newest first."""
    try:
        cfg = Config.load_or_default(ctx.obj["config_path"])
        store = get_stores(config=cfg).history
        if clear:
            store.clear()
            click.echo("History cleared")
            return
        entries = store.get_all()
    except OpenapicmdException as e:
        logger.error(f"Application error: {e}", exc_info=True)
        raise click.ClickException(str(e))

    for entry in entries:
        result = entry.result
        outcome = result.error or f"{result.status} {result.status_text}"
        click.echo(
            f"{entry.id}\t{relative_time(entry.timestamp)}\t{entry.method.upper()} {entry.path}\t{outcome}"
        )


@cli.command(name="recent")
@click.pass_context
def recent(ctx):
    """List recently opened API descriptions."""
    try:
        cfg = Config.load_or_default(ctx.obj["config_path"])
    except OpenapicmdException as e:
        logger.error(f"Application error: {e}", exc_info=True)
        raise click.ClickException(str(e))

    for source in cfg.recent_specs:
        click.echo(source)


@cli.command(name="lookups")
@click.option("--remove", default=None, help="Delete the named lookup")
@click.pass_context
def lookups(ctx, remove):
    """List named lookups saved from request forms."""
    try:
        cfg = Config.load_or_default(ctx.obj["config_path"])
        store = get_stores(config=cfg).saved_lookups
        if remove:
            store.remove(remove)
            click.echo(f"Removed lookup '{remove}'")
            return
        saved = store.get_all()
    except OpenapicmdException as e:
        logger.error(f"Application error: {e}", exc_info=True)
        raise click.ClickException(str(e))

    for name, item in saved.items():
        label = item.label_path or ""
        click.echo(f"{name}\t{item.method.upper()} {item.path}\t{item.value_path}\t{label}")


@cli.command(name="tree")
@click.argument("file")
@click.option("--search", default=None, help="Highlight nodes matching a query")
@click.option("--collapse", multiple=True, help="Node path to collapse, e.g. root.items")
def tree(file, search, collapse):
    """Browse a JSON document as a tree."""
    body = load_json_file(file)
    view = JsonTree(body, viewport=len(build_visible(body)))
    view.collapsed.update(collapse)
    if search:
        view.set_query(search)
        view.confirm_search()
        for index in view.matches:
            click.echo(view.nodes[index].path)
        click.echo(view.status)
        return
    for line in view.render():
        click.echo(line)


@cli.command(name="lookup")
@click.argument("file")
@click.argument("path")
@click.option("--label", default=None, help="Label path paired with the values")
def lookup(file, path, label):
    """Extract value/label options from a JSON document with a lookup path."""
    for option in extract_options(load_json_file(file), path, label):
        click.echo(f"{option.value}\t{option.label}")


@cli.command(name="capture")
@click.argument("file")
@click.argument("path")
@click.argument("name")
@click.option("--env", "env_name", required=True, help="Environment receiving the variable")
@click.pass_context
def capture(ctx, file, path, name, env_name):
    """Store the value at a tree path (e.g. root.data.token) as an environment variable."""
    config_path = ctx.obj["config_path"]
    body = load_json_file(file)
    view = JsonTree(body)
    paths = [node.path for node in view.nodes]
    if path not in paths:
        raise click.ClickException(f"Path not found: {path}")
    view.move_to(paths.index(path))

    try:
        cfg = Config.load_or_default(config_path)
        store = EnvironmentStore(config_path, cfg, env_name)
        value = view.capture(name, store)
    except OpenapicmdException as e:
        logger.error(f"Application error: {e}", exc_info=True)
        raise click.ClickException(str(e))

    click.echo(view.status or value)


def main():
    cli(obj={})
