"""CLI entry point for the ad copy generator."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import List, Optional, Tuple

import click
from dotenv import load_dotenv

from adcopy import __version__
from adcopy.cache import CacheManager, DurableCacheStore
from adcopy.clients import ClientDirectory, ClientNotFoundError
from adcopy.config import AppConfig, load_config
from adcopy.connectors.base import BaseSheetStore, SheetStoreError
from adcopy.history import load_history, recent_generations
from adcopy.industries import supported_industries
from adcopy.mappers import RowOptions, row_options_from_sheet, split_keywords, to_generation_request
from adcopy.orchestrator import GenerationOrchestrator
from adcopy.prompt_builder import PromptBuilder, PromptVariables
from adcopy.providers.base import BaseProvider
from adcopy.providers.router import ProviderRouter
from adcopy.schema import ClientProfile

# Generated columns run past Z; read wide enough to keep them on rewrite.
SHEET_RANGE = "A:ZZ"


def _get_provider(cfg: AppConfig, mode: str) -> BaseProvider:
    """Return a router serving every model name for the selected mode.

    Live mode always builds the configured provider, and any other one
    whose API key is set, all drawing on a single call budget.
    """
    if mode == "dry":
        from adcopy.providers.mock_provider import MockProvider

        mock = MockProvider(
            num_titles=cfg.generation.required_titles,
            num_descriptions=cfg.generation.required_descriptions,
        )
        return ProviderRouter({"mock": mock}, fallback=mock)

    from adcopy.providers.anthropic_provider import AnthropicProvider
    from adcopy.providers.openai_provider import OpenAIProvider
    from adcopy.providers.retrying import CallBudget

    load_dotenv()
    pcfg = cfg.provider
    budget = CallBudget(cfg.budget)
    router = ProviderRouter()
    for name, key_var, factory in (
        ("anthropic", "ANTHROPIC_API_KEY", AnthropicProvider),
        ("openai", "OPENAI_API_KEY", OpenAIProvider),
    ):
        if name != pcfg.name and not os.getenv(key_var):
            continue
        kwargs = {"model": pcfg.model} if name == pcfg.name else {}
        router.register(
            name,
            factory(
                max_tokens=pcfg.max_tokens,
                retry_cfg=cfg.retry_api,
                budget=budget,
                **kwargs,
            ),
        )
    return router


def _get_store(kind: str, csv_dir: str, worksheet: Optional[str]) -> BaseSheetStore:
    if kind == "google":
        from adcopy.connectors.google_sheets import GoogleSheetsStore

        return GoogleSheetsStore(worksheet=worksheet)

    from adcopy.connectors.csv_sheets import CsvSheetStore

    return CsvSheetStore(csv_dir)


def _make_cache(cfg: AppConfig, mode: str) -> CacheManager:
    """Durable tier only in live mode; dry runs never leave mock copy on disk."""
    if mode != "live" or not cfg.cache.enabled:
        return CacheManager(cfg.cache)
    return CacheManager(cfg.cache, durable=DurableCacheStore(cfg.cache.path))


def _get_client(cfg: AppConfig, client_id: Optional[str]) -> Optional[ClientProfile]:
    if not client_id:
        return None
    try:
        return ClientDirectory(cfg.clients.path).require(client_id)
    except ClientNotFoundError:
        raise click.ClickException(f"Unknown client '{client_id}' in {cfg.clients.path}")


@click.group()
@click.version_option(version=__version__, prog_name="adcopy")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output")
def cli(verbose: bool):
    """Ad copy generator: titles and descriptions for search ad groups."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ─────────────────────────────────────────────────────────────────────────────
# generate
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.option("--sheet-id", required=True, help="Sheet ID (CSV file stem for --store csv)")
@click.option("--row", "rows", type=int, multiple=True, required=True, help="Data row index (repeatable)")
@click.option(
    "--mode",
    type=click.Choice(["live", "dry"]),
    default="dry",
    help="live = call API; dry = mock",
)
@click.option("--store", type=click.Choice(["csv", "google"]), default="csv", show_default=True)
@click.option("--csv-dir", default="sheets", show_default=True, help="Directory of <sheet-id>.csv files")
@click.option("--worksheet", default=None, help="Worksheet/tab name (google store)")
@click.option("--client", "client_id", default=None, help="Client profile ID")
@click.option("--industry", default=None, help="Override the client's industry")
@click.option("--persona", default=None, help="Override the client's target persona")
@click.option("--model", default=None, help="provider:model, defaults to generation.default_model")
@click.option("--config", "config_path", default="config.yaml", help="Config file path")
def generate(
    sheet_id: str,
    rows: Tuple[int, ...],
    mode: str,
    store: str,
    csv_dir: str,
    worksheet: Optional[str],
    client_id: Optional[str],
    industry: Optional[str],
    persona: Optional[str],
    model: Optional[str],
    config_path: str,
):
    """Generate titles and descriptions for one or more sheet rows."""
    cfg = load_config(config_path)
    model = model or cfg.generation.default_model

    if mode == "dry":
        click.echo("🏃 DRY-RUN mode — using MockProvider (no API calls)")
    else:
        click.echo(f"🚀 LIVE mode — default provider: {cfg.provider.name}")
        click.echo(f"   Budget: max_calls_per_run={cfg.budget.max_calls_per_run}")
        click.echo(
            f"   Cache:  {'enabled' if cfg.cache.enabled else 'disabled'} → {cfg.cache.path}"
        )

    client = _get_client(cfg, client_id)
    try:
        provider = _get_provider(cfg, mode)
    except EnvironmentError as exc:
        raise click.ClickException(str(exc))
    sheet_store = _get_store(store, csv_dir, worksheet)
    orchestrator = GenerationOrchestrator(
        cfg,
        provider,
        sheet_store,
        cache=_make_cache(cfg, mode),
        history_path=cfg.history.path if cfg.history.enabled else None,
    )

    try:
        sheet = asyncio.run(sheet_store.get_sheet_data(sheet_id, SHEET_RANGE)).values
    except SheetStoreError as exc:
        raise click.ClickException(str(exc))

    row_inputs: List[Tuple[int, RowOptions]] = []
    for row_index in rows:
        try:
            opts = row_options_from_sheet(sheet, row_index, model, client, industry, persona)
        except IndexError as exc:
            raise click.ClickException(str(exc))
        row_inputs.append((row_index, opts))

    click.echo(f"📂 Sheet: {sheet_id} ({len(sheet)} rows)  |  rows: {', '.join(map(str, rows))}")

    if len(row_inputs) == 1:
        row_index, opts = row_inputs[0]
        results = [asyncio.run(orchestrator.generate_and_save_content(opts, sheet_id, row_index, sheet))]
        cache_hits = None
    else:
        def _progress(done: int, total: int) -> None:
            click.echo(f"   … {done}/{total} rows")

        outcome = asyncio.run(
            orchestrator.generate_content_for_multiple_rows(row_inputs, sheet_id, sheet, _progress)
        )
        results = outcome.results
        cache_hits = outcome.cache_hits

    ok = [r for r in results if r.success]
    failed = [r for r in results if not r.success]

    click.echo("")
    click.echo("✅ Generation complete!" if not failed else "⚠️  Generation finished with errors")
    click.echo(f"   Rows generated: {len(ok)}")
    click.echo(f"   Rows failed:    {len(failed)}")
    if cache_hits is not None:
        click.echo(f"   Cache hits:     {cache_hits}")
    for r in failed:
        click.echo(f"   ❌ row {r.row_index}: {r.error}", err=True)

    if mode == "live":
        for name, a in provider.stats().items():
            click.echo("")
            click.echo(f"📊 LLM Stats ({name}):")
            click.echo(f"   API calls: {a.get('call_count', 0)}  |  Retries: {a.get('retry_count', 0)}")
            click.echo(
                f"   Tokens:    {a.get('total_tokens', 0):,}  "
                f"(in: {a.get('total_input_tokens', 0):,}  "
                f"out: {a.get('total_output_tokens', 0):,})"
            )

    if not ok:
        raise click.ClickException("No row could be generated")


# ─────────────────────────────────────────────────────────────────────────────
# prompt
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.option("--campaign", required=True, help="Campaign name or context")
@click.option("--ad-group", required=True, help="Ad group name")
@click.option("--keywords", default="", help="Comma-separated keywords")
@click.option("--client", "client_id", default=None, help="Client profile ID")
@click.option("--industry", default=None, help=f"One of: {', '.join(supported_industries())}")
@click.option("--persona", default=None, help="Target persona")
@click.option("--config", "config_path", default="config.yaml", help="Config file path")
def prompt(
    campaign: str,
    ad_group: str,
    keywords: str,
    client_id: Optional[str],
    industry: Optional[str],
    persona: Optional[str],
    config_path: str,
):
    """Print the prompt that would be sent for an ad group."""
    cfg = load_config(config_path)
    client = _get_client(cfg, client_id)
    request = to_generation_request(
        RowOptions(
            model=cfg.generation.default_model,
            client_context=client.context_text() if client else "",
            campaign_context=campaign,
            ad_group_context=ad_group,
            keywords=split_keywords(keywords),
            industry=industry,
            target_persona=persona,
            client=client,
        ),
        cfg,
    )
    text = PromptBuilder(cfg.generation).build(
        PromptVariables(
            client_context=request.client.context_text(),
            campaign_context=request.campaign.context or request.campaign.name,
            ad_group_name=request.ad_group.name,
            keywords=", ".join(request.ad_group.keywords),
            industry=request.effective_industry,
            target_persona=request.effective_persona,
        )
    )
    click.echo(text)


# ─────────────────────────────────────────────────────────────────────────────
# cache
# ─────────────────────────────────────────────────────────────────────────────


@cli.group("cache")
def cache_group():
    """Content cache commands."""
    pass


@cache_group.command("stats")
@click.option("--config", "config_path", default="config.yaml", help="Config file path")
def cache_stats(config_path: str):
    """Show the number of entries in the durable cache."""
    cfg = load_config(config_path)
    stats = CacheManager(cfg.cache, durable=DurableCacheStore(cfg.cache.path)).stats()
    click.echo(f"📦 Cache: {cfg.cache.path}")
    click.echo(f"   Durable entries: {stats['storage_size']}")
    click.echo(f"   Memory TTL:      {cfg.cache.memory_ttl_seconds:.0f}s")
    click.echo(f"   Durable TTL:     {cfg.cache.durable_ttl_seconds:.0f}s")


@cache_group.command("clear")
@click.option("--config", "config_path", default="config.yaml", help="Config file path")
def cache_clear(config_path: str):
    """Delete every durable cache entry."""
    cfg = load_config(config_path)
    removed = CacheManager(cfg.cache, durable=DurableCacheStore(cfg.cache.path)).clear_durable()
    click.echo(f"🧹 Removed {removed} cache entries from {cfg.cache.path}")


# ─────────────────────────────────────────────────────────────────────────────
# clients
# ─────────────────────────────────────────────────────────────────────────────


@cli.group("clients")
def clients_group():
    """Client profile commands."""
    pass


@clients_group.command("list")
@click.option("--config", "config_path", default="config.yaml", help="Config file path")
def clients_list(config_path: str):
    """List stored client profiles."""
    cfg = load_config(config_path)
    profiles = ClientDirectory(cfg.clients.path).list_clients()
    if not profiles:
        click.echo(f"No clients in {cfg.clients.path}")
        return
    for p in profiles:
        click.echo(f"{p.id:<20} {p.name:<30} {p.industry or '—'}")


@clients_group.command("add")
@click.option("--id", "client_id", required=True, help="Client ID")
@click.option("--name", default="", help="Display name")
@click.option("--industry", default=None, help=f"One of: {', '.join(supported_industries())}")
@click.option("--persona", default=None, help="Target persona")
@click.option("--context", default="", help="Business context")
@click.option("--specifics", default="", help="Offer specifics")
@click.option("--guidelines", default="", help="Editorial guidelines")
@click.option("--config", "config_path", default="config.yaml", help="Config file path")
def clients_add(
    client_id: str,
    name: str,
    industry: Optional[str],
    persona: Optional[str],
    context: str,
    specifics: str,
    guidelines: str,
    config_path: str,
):
    """Create or replace a client profile."""
    cfg = load_config(config_path)
    profile = ClientProfile(
        id=client_id,
        name=name or client_id,
        industry=industry,
        target_persona=persona,
        business_context=context,
        specifics=specifics,
        editorial_guidelines=guidelines,
    )
    try:
        ClientDirectory(cfg.clients.path).upsert(profile)
    except ValueError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"✅ Saved client '{client_id}' to {cfg.clients.path}")


# ─────────────────────────────────────────────────────────────────────────────
# history
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.option("-n", "limit", default=20, show_default=True, help="Number of entries")
@click.option("--config", "config_path", default="config.yaml", help="Config file path")
def history(limit: int, config_path: str):
    """Show the most recent generations."""
    cfg = load_config(config_path)
    entries = load_history(cfg.history.path)
    if not entries:
        click.echo(f"No history in {cfg.history.path}")
        return
    df = recent_generations(entries, n=limit)
    click.echo(df.to_string(index=False))


if __name__ == "__main__":
    cli()
