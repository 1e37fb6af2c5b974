from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import click

from .compliance import aggregate, summarize_licenses
from .dependency_loader import load_watchlist, parse_sbom
from .fetcher import HttpGraphFetcher
from .graph_layout import subgraph_as_dict
from .license_compat import license_display_name, license_requirements, resolve
from .navigator import VIEW_MODES, GraphNavigator
from .policy import evaluate_policy, load_policy, write_github_check
from .reporting import write_report
from .types import REVIEW_STATUSES, DependencyRecord
from .watchlist import LICENSE_FILTER_MODES, PROCESSING_FILTER_MODES, SORT_DIRECTIONS, SORT_KEYS, QueryControls, run


def _load_records(watchlist: Optional[str], sbom_files: tuple[str, ...]) -> list[DependencyRecord]:
    records: list[DependencyRecord] = []
    try:
        if watchlist:
            records.extend(load_watchlist(Path(watchlist)))
        for sbom in sbom_files:
            records.extend(parse_sbom(Path(sbom)))
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    return records


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log engine decisions to stderr.")
def main(verbose: bool) -> None:
    """Dependency license compliance and graph exploration."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@main.command("license")
@click.argument("project_license")
@click.argument("package_license")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON instead of human text.")
@click.option("--strict", is_flag=True, help="Exit non-zero when the licenses are incompatible.")
def license_command(project_license: str, package_license: str, json_output: bool, strict: bool) -> None:
    """Check whether PACKAGE_LICENSE may be used by a PROJECT_LICENSE project."""

    result = resolve(project_license, package_license)
    if json_output:
        payload = result.as_dict()
        payload["package_requirements"] = license_requirements(package_license)
        click.echo(json.dumps(payload, indent=2))
    else:
        verdict = "compatible" if result.is_compatible else "INCOMPATIBLE"
        click.echo(
            f"{license_display_name(package_license)} in a {license_display_name(project_license)} project: "
            f"{verdict} ({result.severity}) - {result.reason}"
        )
        for requirement in license_requirements(package_license):
            click.echo(f"  - {requirement}")

    if strict and not result.is_compatible:
        raise SystemExit(1)


@main.command()
@click.argument("watchlist", required=False, type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option("--project-license", help="License declared by the project (overrides the policy file).")
@click.option(
    "--sbom-file",
    multiple=True,
    type=click.Path(exists=True, dir_okay=False, path_type=str),
    help="CycloneDX/SPDX SBOMs whose components are included as dependencies.",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "markdown", "md", "html"], case_sensitive=False),
    default="markdown",
    show_default=True,
    help="Output format for the report.",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True, path_type=str),
    help="Write the report to a file instead of stdout.",
)
@click.option(
    "--policy",
    type=click.Path(exists=True, dir_okay=False, path_type=str),
    help="Path to a policy-as-code YAML file for CI gating.",
)
@click.option(
    "--github-check-output",
    type=click.Path(dir_okay=False, writable=True, path_type=str),
    help="Write a GitHub Check-style JSON summary for PR gating.",
)
@click.option(
    "--fail-under",
    type=click.IntRange(0, 100),
    help="Exit non-zero when overall compliance falls below this percentage.",
)
@click.option("--license-summary", is_flag=True, help="Include per-license dependency counts.")
def compliance(
    watchlist: Optional[str],
    project_license: Optional[str],
    sbom_file: tuple[str, ...],
    fmt: str,
    output: Optional[str],
    policy: Optional[str],
    github_check_output: Optional[str],
    fail_under: Optional[int],
    license_summary: bool,
) -> None:
    """Aggregate license conflicts and vulnerabilities into a compliance report."""

    if not watchlist and not sbom_file:
        raise click.UsageError("Provide a watchlist export or at least one --sbom-file.")

    policy_data = None
    if policy:
        try:
            policy_data = load_policy(Path(policy))
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc
        project_license = project_license or policy_data.project_license

    records = _load_records(watchlist, sbom_file)
    report = aggregate(project_license, records)
    summary = summarize_licenses(records) if license_summary else None

    destination = Path(output) if output else None
    rendered = write_report(report, fmt, destination, summary)
    if not destination:
        click.echo(rendered)

    if policy_data is not None:
        evaluation = evaluate_policy(report, policy_data)
        if github_check_output:
            write_github_check(Path(github_check_output), evaluation, report)
        for warning in evaluation.warnings:
            click.echo(f"warning: {warning}", err=True)
        if not evaluation.passed:
            for failure in evaluation.failures:
                click.echo(f"policy: {failure}", err=True)
            raise SystemExit(1)

    if fail_under is not None and report.overall_compliance_percent < fail_under:
        raise SystemExit(1)


@main.command("watchlist")
@click.argument("watchlist", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option("--project-license", help="License used by the compatible/incompatible filters.")
@click.option("--search", default="", help="Case-insensitive substring of the package name.")
@click.option(
    "--status",
    multiple=True,
    type=click.Choice(list(REVIEW_STATUSES)),
    help="Only show entries with this review status (repeatable).",
)
@click.option(
    "--license-filter",
    type=click.Choice(list(LICENSE_FILTER_MODES)),
    default="all",
    show_default=True,
)
@click.option(
    "--processing",
    type=click.Choice(list(PROCESSING_FILTER_MODES)),
    default="all",
    show_default=True,
)
@click.option("--risk-min", type=float, default=0, show_default=True)
@click.option("--risk-max", type=float, default=100, show_default=True)
@click.option("--sort-by", type=click.Choice(sorted(SORT_KEYS)), help="Sort column; input order when omitted.")
@click.option("--sort-dir", type=click.Choice(list(SORT_DIRECTIONS)), help="Sort direction.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON instead of human text.")
def watchlist_command(
    watchlist: str,
    project_license: Optional[str],
    search: str,
    status: tuple[str, ...],
    license_filter: str,
    processing: str,
    risk_min: float,
    risk_max: float,
    sort_by: Optional[str],
    sort_dir: Optional[str],
    json_output: bool,
) -> None:
    """Filter and sort a watchlist export."""

    controls = QueryControls(
        search_text=search,
        status_filter=set(status),
        license_filter_mode=license_filter,
        processing_filter_mode=processing,
        risk_min=risk_min,
        risk_max=risk_max,
        sort_key=sort_by,
        sort_dir=sort_dir,
    )
    visible = run(_load_records(watchlist, ()), controls, project_license)

    if json_output:
        payload = [
            {
                "id": record.id,
                "name": record.display_name,
                "version": record.version,
                "license": record.license,
                "status": record.status,
                "risk": record.risk,
                "processing_status": record.processing_status,
            }
            for record in visible
        ]
        click.echo(json.dumps(payload, indent=2))
        return

    if not visible:
        click.echo("No watchlist entries match the current filters.")
        return
    for record in visible:
        click.echo(
            f"{record.display_name} {record.version or 'unversioned'} "
            f"license={license_display_name(record.license)} status={record.status} risk={record.risk:g}"
        )


async def _explore(
    navigator: GraphNavigator,
    select: tuple[str, ...],
    back: int,
    view_mode: str,
    included: tuple[str, ...],
    excluded: tuple[str, ...],
    highlight: tuple[str, ...],
    query: Optional[str],
) -> dict:
    navigator.set_view_mode(view_mode)
    navigator.open()
    navigator.set_license_filters(included, excluded)
    navigator.set_vulnerable_highlights(highlight)
    await navigator.settle()
    for node_id in select:
        navigator.select_node(node_id)
        await navigator.settle()
    for _ in range(back):
        navigator.go_back()
        await navigator.settle()
    if query:
        await navigator.search(query)

    view = navigator.view
    return {
        "current_node": navigator.state.current_node_id,
        "history": list(navigator.state.history),
        "view_mode": view.view_mode,
        "error": view.error,
        "graph": subgraph_as_dict(view.subgraph),
        "search": {
            "query": navigator.search_query,
            "results": [node.id for node in navigator.search_results],
            "error": navigator.search_error,
        },
    }


@main.command()
@click.argument("root")
@click.option("--watchlist-id", required=True, help="Watchlist whose dependency graph is explored.")
@click.option("--user-watchlist", is_flag=True, help="Use the per-user watchlist routes.")
@click.option("--base-url", envvar="DEPWATCH_GRAPH_URL", help="Graph service base URL.")
@click.option(
    "--timeout",
    type=click.FloatRange(0, min_open=True),
    envvar="DEPWATCH_GRAPH_TIMEOUT",
    help="HTTP timeout in seconds.",
)
@click.option("--select", "select", multiple=True, help="Node to open after the root (repeatable, in order).")
@click.option("--back", type=click.IntRange(0), default=0, show_default=True, help="Steps to go back afterwards.")
@click.option("--view-mode", type=click.Choice(list(VIEW_MODES)), default="graph", show_default=True)
@click.option("--include-license", multiple=True, help="Only show packages with this license (repeatable).")
@click.option("--exclude-license", multiple=True, help="Hide packages with this license (repeatable).")
@click.option("--highlight", multiple=True, help="Package id to highlight as vulnerable (repeatable).")
@click.option("--search", "query", help="Search the graph from the final node.")
def explore(
    root: str,
    watchlist_id: str,
    user_watchlist: bool,
    base_url: Optional[str],
    timeout: Optional[float],
    select: tuple[str, ...],
    back: int,
    view_mode: str,
    include_license: tuple[str, ...],
    exclude_license: tuple[str, ...],
    highlight: tuple[str, ...],
    query: Optional[str],
) -> None:
    """Walk the dependency graph from ROOT and print the final view as JSON."""

    fetcher = HttpGraphFetcher(watchlist_id=watchlist_id, user_watchlist=user_watchlist)
    if base_url:
        fetcher.base_url = base_url
    if timeout is not None:
        fetcher.timeout = timeout

    navigator = GraphNavigator(fetcher, root)
    result = asyncio.run(
        _explore(navigator, select, back, view_mode, include_license, exclude_license, highlight, query)
    )
    click.echo(json.dumps(result, indent=2))
    if result["error"]:
        click.echo(f"Graph fetch failed: {result['error']}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
