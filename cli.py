from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from pathlib import Path
import typer
from rich.console import Console
from rich.table import Table

from config import SETTINGS
from languages import Direction, load_language_support
from translator.assignment import AssignmentEngine
from translator.base import Provider, parse_providers
from translator.factory import build_orchestrator, build_translators
from translator.orchestrator import RequestRejected
from translator.status import check_status
from utils.cache import ResponseStore
from utils.logging_config import configure_logging

app = typer.Typer(add_completion=False)
console = Console()


def _run_async(coro):
    return asyncio.run(coro)


def _open_store() -> ResponseStore:
    hours = SETTINGS.response_store_max_age_hours
    max_age = timedelta(hours=hours) if hours else None
    return ResponseStore(SETTINGS.response_store_path, max_age=max_age)


def _split(value: str | None) -> list[str]:
    return [item.strip().lower() for item in (value or "").split(",") if item.strip()]


@app.command(help="Translate TEXT into one or more languages using every configured provider")
def translate(
    text: str = typer.Argument(...),
    targets: str = typer.Option(..., "--targets", "-t", help="Comma-separated 3-letter target codes"),
    source: str | None = typer.Option(None, "--source", "-s", help="3-letter source code; detected when omitted"),
    priority: str | None = typer.Option(None, "--priority", "-p", help="Provider priority, e.g. google,deepl"),
    detect: str | None = typer.Option(None, "--detect", "-d", help="Detection providers in preference order, or 'auto'"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON response"),
    use_cache: bool = typer.Option(True, "--cache/--no-cache", help="Reuse stored responses for identical requests"),
    proxy: str | None = typer.Option(None, help="Proxy URL for upstream requests"),
    log_file: Path | None = typer.Option(None, help="Write debug logs to this file"),
) -> None:
    configure_logging(log_file)
    store = _open_store() if use_cache else None
    target_codes = _split(targets)

    route = _split(priority)
    body = store.lookup(text, target_codes, source, priority=route) if store is not None else None
    if body is not None:
        console.log("Using stored response")
    else:
        async def runner():
            async with build_orchestrator(proxy=proxy) as orchestrator:
                return await orchestrator.handle(
                    text,
                    target_codes,
                    source_lang=source,
                    priority_override=priority,
                    detection_preference=detect,
                )

        try:
            response = _run_async(runner())
        except RequestRejected as exc:
            console.print(f"[red]Rejected:[/red] {exc.reason}")
            raise typer.Exit(code=2)
        body = response.to_dict()
        if store is not None and not response.errors:
            store.store(text, target_codes, body, source, priority=route)

    if as_json:
        console.print_json(json.dumps(body, ensure_ascii=False))
        return

    metadata = body.get("metadata", {})
    providers = metadata.get("providers", {})
    table = Table(title=f"Source: {metadata.get('src_lang')} ({metadata.get('language_definition')})")
    table.add_column("Language")
    table.add_column("Translation")
    table.add_column("Provider")
    for code, value in body.items():
        if code in {"metadata", "errors"}:
            continue
        table.add_row(code, value, providers.get(code, ""))
    console.print(table)

    errors = body.get("errors", {})
    if errors.get("unsupported_target_langs"):
        console.print(f"[yellow]Unsupported:[/yellow] {', '.join(errors['unsupported_target_langs'])}")
    for code, detail in errors.get("failure_details", {}).items():
        console.print(f"[red]Failed {code}:[/red] {detail}")


@app.command(help="Probe every translator and detector with a short request")
def status(as_json: bool = typer.Option(False, "--json", help="Print the raw JSON report")) -> None:
    configure_logging()
    support = load_language_support()

    async def runner():
        translators = build_translators(languages=support)
        try:
            return await check_status(translators)
        finally:
            await asyncio.gather(*(translator.close() for translator in translators.values()))

    report = _run_async(runner())
    if as_json:
        console.print_json(json.dumps(report, ensure_ascii=False))
        return

    table = Table(title=f"Status at {report['timestamp']}")
    table.add_column("Provider")
    table.add_column("Configured")
    table.add_column("Translate")
    table.add_column("Detect")
    for name, translation in report["translators"].items():
        detection = report["detectors"][name]
        table.add_row(
            name,
            "yes" if report["environment"][name] else "no",
            translation.get("translation") or translation.get("error", ""),
            str(detection.get("detected_language") or detection.get("error", "")),
        )
    console.print(table)
    summary = report["summary"]
    colour = "green" if summary["all_systems_operational"] else "yellow"
    console.print(f"[{colour}]Working translators: {', '.join(summary['working_translators']) or 'none'}[/{colour}]")


@app.command(help="Show which provider each target language would be routed to")
def assign(
    targets: str = typer.Option(..., "--targets", "-t", help="Comma-separated 3-letter target codes"),
    priority: str | None = typer.Option(None, "--priority", "-p", help="Provider priority order"),
) -> None:
    support = load_language_support()
    order, ignored = parse_providers(priority)
    if ignored:
        console.print(f"[yellow]Ignoring unknown providers:[/yellow] {', '.join(ignored)}")
    if not order:
        order, _ = parse_providers(SETTINGS.routing.primary_order)
    result = AssignmentEngine(support.capabilities).assign(_split(targets), order)
    console.print_json(json.dumps(result.to_dict()))


@app.command(help="List the languages each provider accepts")
def languages(
    provider: str | None = typer.Option(None, "--provider", help="Only list this provider"),
    direction: Direction = typer.Option(Direction.TARGET, "--direction", help="source or target"),
) -> None:
    support = load_language_support()
    selected, unknown = parse_providers(provider)
    if unknown:
        raise typer.BadParameter(f"unknown provider {unknown[0]!r}", param_hint="--provider")
    providers = selected or list(Provider)
    for item in providers:
        capability = support.capabilities.get(item.value)
        codes = sorted(capability.sources if direction is Direction.SOURCE else capability.targets) if capability else []
        table = Table(title=f"{item.value} ({direction.value}, {len(codes)} languages)")
        table.add_column("Code")
        table.add_column("Name")
        for code in codes:
            table.add_row(code, support.registry.name_of(code) or "")
        console.print(table)


if __name__ == "__main__":
    app()
