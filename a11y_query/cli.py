# a11y_query/cli.py
from __future__ import annotations

"""Command-line interface
------------------------
Inspect effective configuration, check query files, and try queries against
a live page from the terminal. Thin wrapper around find/find_all.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import click
from playwright.async_api import async_playwright

from a11y_query.core.errors import QueryError
from a11y_query.core.launch import launch_args, launch_options
from a11y_query.core.queries import find, find_all
from a11y_query.core.query import Query
from a11y_query.core.query_file import load_queries_file, query_from_mapping
from a11y_query.selectors.document import PlaywrightDocument, release_all
from a11y_query.utils.config import Settings, get_settings
from a11y_query.utils.logger import (
    attach_file_logger,
    bind,
    detach_file_logger,
    get_logger,
    log_with_context,
    set_log_level,
    unbind,
)


# -------- helpers --------


def _echo_json(obj) -> None:
    click.echo(json.dumps(obj, indent=2, ensure_ascii=False, default=str))


_SUMMARY_SCRIPT = """
(node) => ({
  tag: node.tagName ? node.tagName.toLowerCase() : node.nodeName,
  id: node.id || null,
  text: (node.textContent || '').replace(/\\s+/g, ' ').trim().slice(0, 80),
})
"""


async def _summarize(doc: PlaywrightDocument, handle: Any) -> Dict[str, Any]:
    info = await doc.evaluate(handle, _SUMMARY_SCRIPT)
    snap = await doc.snapshot(handle)
    info["role"] = snap.get("role")
    info["name"] = snap.get("name")
    return info


async def _run_find(
    url: str,
    queries: List[Query],
    *,
    find_many: bool,
    timeout: Union[int, bool],
    visible: bool,
    settings: Settings,
) -> List[Dict[str, Any]]:
    """Open `url` in Chromium and run each query; one result dict per query."""
    log = get_logger(__name__)
    results: List[Dict[str, Any]] = []
    async with async_playwright() as p:
        browser = await p.chromium.launch(**launch_options(settings))
        doc: Optional[PlaywrightDocument] = None
        try:
            page = await browser.new_page()
            doc = PlaywrightDocument(page)
            await page.goto(url, wait_until="domcontentloaded", timeout=settings.PAGE_LOAD_TIMEOUT)
            for q in queries:
                qlog = log_with_context(log, query=q.describe())
                qlog.info("Running query")
                try:
                    if find_many:
                        handles = await find_all(q, document=doc, timeout=timeout, visible=visible)
                    else:
                        handles = [await find(q, document=doc, timeout=timeout, visible=visible)]
                    matches = [await _summarize(doc, h) for h in handles]
                    await release_all(doc, handles)
                    results.append({"query": q.describe(), "ok": True, "matches": matches})
                except QueryError as exc:
                    qlog.warning(f"{exc.name}: {exc}")
                    results.append({"query": q.describe(), "ok": False, "error_type": exc.name, "error": str(exc)})
        finally:
            if doc is not None:
                await doc.close()
            await browser.close()
    return results


# -------- CLI root --------


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL from settings",
)
@click.version_option(package_name="a11y-query")
def cli(log_level: Optional[str]):
    _ = get_settings()
    if log_level:
        set_log_level(log_level.upper())


# -------- commands --------


@cli.command("config")
def cmd_config():
    """Print effective settings (after .env & env vars)."""
    _echo_json(get_settings().model_dump(mode="json"))


@cli.command("launch-args")
@click.argument("args", nargs=-1)
def cmd_launch_args(args: tuple[str, ...]):
    """Print Chromium arguments with accessibility info enabled."""
    for a in launch_args(list(args) or get_settings().LAUNCH_ARGS):
        click.echo(a)


@cli.command("validate")
@click.argument("files", nargs=-1, required=True, type=click.Path(dir_okay=False, exists=True))
def cmd_validate(files: tuple[str, ...]):
    """Parse query files and report each query (supports multi-doc YAML)."""
    ok = True
    for fp in files:
        try:
            for q in load_queries_file(fp):
                click.echo(f"OK  {fp}  ->  {q.describe()}")
        except (ValueError, FileNotFoundError) as e:
            ok = False
            click.echo(f"ERR {fp}  ->  {e}")
    sys.exit(0 if ok else 1)


@cli.command("find")
@click.argument("url")
@click.option("--role", default=None, help="Accessibility role, e.g. button")
@click.option("--name", default=None, help="Accessible name; /regex/flags for a pattern")
@click.option("--text", default=None, help="Text content; /regex/flags for a pattern")
@click.option("--selector", default=None, help="CSS selector narrowing the candidates")
@click.option("--file", "files", multiple=True, type=click.Path(dir_okay=False, exists=True), help="Query file(s)")
@click.option("--all", "find_many", is_flag=True, default=False, help="Allow several matches (find_all)")
@click.option("--timeout", type=int, default=None, help="Timeout in ms (default from settings)")
@click.option("--no-timeout", is_flag=True, default=False, help="Wait indefinitely")
@click.option("--hidden", is_flag=True, default=False, help="Include hidden elements")
@click.option("--json-out", type=click.Path(dir_okay=False), default=None, help="Write a JSON summary to this file")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Also write JSON log lines for this run to a file")
def cmd_find(
    url: str,
    role: Optional[str],
    name: Optional[str],
    text: Optional[str],
    selector: Optional[str],
    files: tuple[str, ...],
    find_many: bool,
    timeout: Optional[int],
    no_timeout: bool,
    hidden: bool,
    json_out: Optional[str],
    log_file: Optional[str],
):
    """
    Run queries against a page.

    Examples:
      a11y-query find http://localhost:8000 --role button --name /save/i
      a11y-query find http://localhost:8000 --file queries/login.yaml --all
    """
    settings = get_settings()

    queries: List[Query] = []
    try:
        inline = {k: v for k, v in {"role": role, "name": name, "text": text, "selector": selector}.items() if v}
        if inline:
            queries.append(query_from_mapping(inline))
        for fp in files:
            queries.extend(load_queries_file(fp))
    except ValueError as e:
        click.echo(f"ERR {e}")
        sys.exit(2)
    if not queries:
        click.echo("Nothing to find. Provide --role/--name/--text/--selector or --file.")
        sys.exit(2)

    effective_timeout: Union[int, bool] = False if no_timeout else (settings.TIMEOUT_MS if timeout is None else timeout)

    file_handler = attach_file_logger(log_file) if log_file else None
    bind(url=url)
    try:
        results = asyncio.run(
            _run_find(
                url,
                queries,
                find_many=find_many,
                timeout=effective_timeout,
                visible=not hidden,
                settings=settings,
            )
        )
    finally:
        unbind("url")
        if file_handler is not None:
            detach_file_logger(file_handler)

    for res in results:
        if res["ok"]:
            click.echo(f"OK  {res['query']} -> {len(res['matches'])} match(es)")
            for m in res["matches"]:
                click.echo(f"      <{m.get('tag')}> role={m.get('role')!r} name={m.get('name')!r} text={m.get('text')!r}")
        else:
            click.echo(f"ERR {res['query']} -> {res['error_type']}: {res['error']}")

    fail_count = sum(1 for r in results if not r["ok"])
    click.echo(f"Done. OK={len(results) - fail_count}  FAIL={fail_count}")

    if json_out:
        outp = Path(json_out).resolve()
        outp.parent.mkdir(parents=True, exist_ok=True)
        outp.write_text(json.dumps({"url": url, "results": results}, indent=2), encoding="utf-8")
        click.echo(f"Wrote summary: {outp}")

    sys.exit(0 if fail_count == 0 else 1)


def main() -> None:
    cli(prog_name="a11y-query")


if __name__ == "__main__":
    main()
