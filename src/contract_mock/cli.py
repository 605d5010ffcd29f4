"""CLI entry point for contract-mock."""

import json
import logging
from pathlib import Path
from urllib.parse import parse_qsl, urlsplit

import click
import yaml

from contract_mock.matching import OperationMatcher
from contract_mock.model import APISpec, Fixture, UnifiedRequest
from contract_mock.router import RequestRouter
from contract_mock.spec.detect import read_document
from contract_mock.spec.registry import spec_registry


def _load_spec(spec_path: Path) -> APISpec:
    spec = spec_registry.parse_spec(read_document(spec_path))
    if spec is None:
        raise click.ClickException(f"Unrecognized spec format: {spec_path}")
    return spec


def _load_fixtures(fixtures_path: Path | None, spec: APISpec, service: str) -> list[Fixture]:
    """Read a fixture list, or local mock data keyed by operation id."""
    if fixtures_path is None:
        return []
    data = yaml.safe_load(fixtures_path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        return [Fixture.model_validate(item) for item in data]
    if isinstance(data, dict):
        handler = spec_registry.get_handler(spec.type)
        return handler.fixtures_from_mock_data(data, service, "local", spec)
    raise click.BadParameter(f"Expected a list or mapping in {fixtures_path}")


def _build_request(method, path, channel, event_type, body, headers) -> UnifiedRequest:
    parsed_body = None
    if body is not None:
        try:
            parsed_body = json.loads(body)
        except ValueError:
            parsed_body = body
    query = {}
    if path and "?" in path:
        parts = urlsplit(path)
        path = parts.path
        query = dict(parse_qsl(parts.query, keep_blank_values=True))
    return UnifiedRequest(
        method=method.upper() if method else None,
        path=path,
        headers={name.strip(): value.strip() for name, _, value in (h.partition(":") for h in headers)},
        query=query,
        body=parsed_body,
        channel=channel,
        event_type=event_type,
    )


_request_options = [
    click.option("--method", "-X", default=None, help="HTTP method."),
    click.option("--path", "-p", default=None, help="Request path, optionally with a query string."),
    click.option("--channel", default=None, help="Event channel."),
    click.option("--event-type", default=None, help="Event type."),
    click.option("--body", "-d", default=None, help="Request body (JSON or text)."),
    click.option("--header", "-H", "headers", multiple=True, help="Header as 'Name:value'. Repeatable."),
]


def request_options(func):
    for option in reversed(_request_options):
        func = option(func)
    return func


@click.group()
@click.option("--debug", is_flag=True, help="Log matching and scoring decisions.")
@click.pass_context
def main(ctx: click.Context, debug: bool):
    """contract-mock: resolve requests against API specs and fixtures."""
    ctx.obj = {"debug": debug}
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@main.command()
@click.argument("spec_path", type=click.Path(exists=True, path_type=Path))
def operations(spec_path: Path):
    """List the operations a spec declares."""
    spec = _load_spec(spec_path)
    handler = spec_registry.get_handler(spec.type)
    ops = handler.extract_operations(spec)
    click.echo(f"{spec.type} {spec.version}: {len(ops)} operations")
    for op in ops:
        target = f"{op.method} {op.path}" if op.method else (op.channel or op.type)
        click.echo(f"  {op.id}  {target}")


@main.command()
@click.argument("spec_path", type=click.Path(exists=True, path_type=Path))
@request_options
@click.pass_obj
def match(obj: dict, spec_path: Path, method, path, channel, event_type, body, headers):
    """Show the ranked operation candidates for a request."""
    spec = _load_spec(spec_path)
    request = _build_request(method, path, channel, event_type, body, headers)
    result = OperationMatcher(spec, debug=obj["debug"] or None).match(request)
    if result.selected is None:
        raise click.ClickException("No matching operation.")
    for index, candidate in enumerate(result.candidates):
        marker = "*" if index == 0 else " "
        click.echo(f"{marker} {candidate.operation.id}  {candidate.confidence:.3f}  {'; '.join(candidate.reasons)}")


@main.command()
@click.argument("spec_path", type=click.Path(exists=True, path_type=Path))
@click.option("--fixtures", "fixtures_path", default=None, type=click.Path(exists=True, path_type=Path), help="Fixtures (YAML/JSON list) or local mock data.")
@click.option("--service", default="local-service", help="Service name for local mock data.")
@request_options
@click.pass_obj
def mock(obj: dict, spec_path: Path, fixtures_path: Path | None, service: str, method, path, channel, event_type, body, headers):
    """Print the mock response for a request as JSON."""
    spec = _load_spec(spec_path)
    fixtures = _load_fixtures(fixtures_path, spec, service)
    request = _build_request(method, path, channel, event_type, body, headers)
    outcome = RequestRouter(spec, fixtures, debug=obj["debug"] or None).handle(request)
    click.echo(json.dumps(outcome.response.model_dump(mode="json"), indent=2, ensure_ascii=False))
