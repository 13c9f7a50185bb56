"""Envelope developer CLI implemented with Typer."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

import typer
from pydantic_core import from_json, to_json

from packages.iojson.config import IojsonSettings, load_settings
from packages.iojson.envelope import Envelope, RawFragment
from packages.iojson.errors import EnvelopeError, IndexOutOfRange, KeyNotFoundError
from packages.iojson.http import EnvelopeClient, HttpError, create_echo_app, run_app
from packages.iojson.logging import configure_logging

SUCCESS_EXIT_CODE = 0
ENVELOPE_ERROR_EXIT_CODE = 3
DECODE_ERROR_EXIT_CODE = 4


@dataclass(frozen=True)
class CliConfig:
    """Global CLI runtime options shared by all commands."""

    settings: IojsonSettings
    as_json: bool


def _require_config(ctx: typer.Context) -> CliConfig:
    """Return required CLI config from Typer context."""

    config = ctx.obj
    if not isinstance(config, CliConfig):
        raise RuntimeError("CLI configuration not initialized")
    return config


def _render(raw: bytes, as_json: bool) -> str:
    """Render one JSON document compact or indented."""
    if as_json:
        return raw.decode("utf-8")
    return to_json(from_json(raw), indent=2).decode("utf-8")


def _emit_error(exc: Exception, as_json: bool) -> None:
    """Render mapped errors to stderr."""

    if as_json:
        typer.echo(to_json({"error": str(exc)}).decode("utf-8"), err=True)
        return
    typer.echo(f"error: {exc}", err=True)


def _select(envelope: Envelope, key: str | None, index: int | None) -> RawFragment | None:
    """Return the requested fragment, or ``None`` for the whole document."""
    if key is not None:
        fragment = envelope.raw_data(key)
        if fragment is None:
            raise KeyNotFoundError(message=f"{key} key does not exist", key=key)
        return fragment
    if index is not None:
        fragment = envelope.raw_obj(index)
        if fragment is None:
            raise IndexOutOfRange(
                message=f"index {index} is out of range for {envelope.object_count} objects",
                key=index,
                length=envelope.object_count,
            )
        return fragment
    return None


def _run_command(
    cfg: CliConfig,
    load: Callable[[], Envelope],
    *,
    key: str | None = None,
    index: int | None = None,
) -> None:
    """Load one envelope and map outputs/errors to process semantics."""
    try:
        envelope = load()
        fragment = _select(envelope, key, index)
    except (EnvelopeError, HttpError) as exc:
        _emit_error(exc, cfg.as_json)
        raise typer.Exit(code=DECODE_ERROR_EXIT_CODE) from exc

    failed = not envelope.status or envelope.has_errors
    if fragment is not None:
        typer.echo(_render(fragment.raw, cfg.as_json))
    else:
        typer.echo(_render(envelope.encode(), cfg.as_json))

    if failed:
        raise typer.Exit(code=ENVELOPE_ERROR_EXIT_CODE)
    raise typer.Exit(code=SUCCESS_EXIT_CODE)


app = typer.Typer(no_args_is_help=True, help="Envelope command-line interface")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, help="YAML settings file"),
    max_bytes: int | None = typer.Option(
        None,
        min=1,
        help="Inbound envelope size limit in bytes",
    ),
    debug: bool = typer.Option(False, "--debug", help="Append caller location to errors"),
    as_json: bool = typer.Option(False, "--json", help="Emit compact JSON output"),
) -> None:
    """Store global options for all commands."""

    envelope_params: dict[str, Any] = {}
    if max_bytes is not None:
        envelope_params["max_decode_bytes"] = max_bytes
    if debug:
        envelope_params["debug"] = True
    cli_params = {"envelope": envelope_params} if envelope_params else None

    ctx.obj = CliConfig(
        settings=load_settings(cli_params=cli_params, config_path=config),
        as_json=as_json,
    )


@app.command("inspect")
def inspect_command(
    ctx: typer.Context,
    source: str = typer.Argument("-", help="Envelope file path, or - for stdin"),
    key: str | None = typer.Option(None, help="Print one ObjMap fragment"),
    index: int | None = typer.Option(None, min=0, help="Print one ObjArr fragment"),
) -> None:
    """Decode an envelope document and print it."""
    cfg = _require_config(ctx)

    def load() -> Envelope:
        envelope = Envelope.from_settings(cfg.settings.envelope)
        if source == "-":
            envelope.decode(typer.get_binary_stream("stdin"))
            return envelope
        try:
            with open(source, "rb") as handle:
                envelope.decode(handle)
        except OSError as exc:
            raise typer.BadParameter(f"cannot read {source}: {exc}") from exc
        return envelope

    _run_command(cfg, load, key=key, index=index)


@app.command("fetch")
def fetch_command(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Envelope endpoint URL"),
    method: str = typer.Option("GET", help="HTTP method"),
    timeout: float = typer.Option(10.0, min=0.001, help="Request timeout in seconds"),
    key: str | None = typer.Option(None, help="Print one ObjMap fragment"),
    index: int | None = typer.Option(None, min=0, help="Print one ObjArr fragment"),
) -> None:
    """Fetch a remote envelope and print it."""
    cfg = _require_config(ctx)

    def load() -> Envelope:
        with EnvelopeClient(timeout_seconds=timeout, settings=cfg.settings.envelope) as client:
            return client.fetch(method.upper(), url)

    _run_command(cfg, load, key=key, index=index)


@app.command("serve")
def serve_command(ctx: typer.Context) -> None:
    """Run the envelope echo service."""
    cfg = _require_config(ctx)
    settings = cfg.settings
    configure_logging(settings.logging)
    run_app(
        create_echo_app(settings.envelope),
        host=settings.http.host,
        port=settings.http.port,
        log_level=settings.http.log_level,
    )


if __name__ == "__main__":
    app()
