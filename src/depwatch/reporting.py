from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Optional

from jinja2 import Environment, select_autoescape

from .types import ComplianceReport


env = Environment(autoescape=select_autoescape(["html", "xml"]))


def _non_compliant_rows(report: ComplianceReport) -> Iterable[dict]:
    for dep in report.non_compliant:
        yield {
            "name": dep.name,
            "version": dep.version or "unversioned",
            "license": dep.license or "unknown",
            "reason": dep.reason,
            "severity": dep.severity,
        }


def _badge_class(report: ComplianceReport) -> str:
    if report.vulnerability_breakdown.critical > 0:
        return "bad"
    if report.overall_compliance_percent >= 90:
        return "good"
    if report.overall_compliance_percent >= 70:
        return "warn"
    return "bad"


def render_json(report: ComplianceReport, license_summary: Optional[dict[str, int]] = None) -> str:
    payload = report.as_dict()
    if license_summary is not None:
        payload["license_summary"] = license_summary
    return json.dumps(payload, indent=2)


def render_markdown(report: ComplianceReport, license_summary: Optional[dict[str, int]] = None) -> str:
    breakdown = report.vulnerability_breakdown
    lines = [
        "# Dependency Compliance Report",
        "",
        f"Project license: {report.project_license or 'none'}",
        f"Overall compliance: {report.overall_compliance_percent}%",
        f"License conflicts: {report.license_conflict_count} of {report.total_dependencies} dependencies",
        f"Vulnerable dependencies: {report.vulnerable_dependency_count}",
    ]

    lines.append("\n## Vulnerability breakdown\n")
    lines.append("| Critical | High | Medium | Low |")
    lines.append("| --- | --- | --- | --- |")
    lines.append(f"| {breakdown.critical} | {breakdown.high} | {breakdown.medium} | {breakdown.low} |")

    lines.append("\n## Non-compliant dependencies\n")
    rows = list(_non_compliant_rows(report))
    if rows:
        lines.append("| Name | Version | License | Severity | Reason |")
        lines.append("| --- | --- | --- | --- | --- |")
        for row in rows:
            lines.append(
                f"| {row['name']} | {row['version']} | {row['license']} | {row['severity']} | {row['reason']} |"
            )
    else:
        lines.append("None")

    if license_summary:
        lines.append("\n## License summary\n")
        lines.append("| License | Dependencies |")
        lines.append("| --- | --- |")
        for name, count in license_summary.items():
            lines.append(f"| {name} | {count} |")

    return "\n".join(lines)


def render_html(report: ComplianceReport, license_summary: Optional[dict[str, int]] = None) -> str:
    template = env.from_string(
        """
<!doctype html>
<html lang=\"en\">
<head>
  <meta charset=\"utf-8\" />
  <title>Dependency Compliance Report</title>
  <style>
    body { font-family: Arial, sans-serif; margin: 2rem; }
    h1, h2 { color: #1f2937; }
    table { border-collapse: collapse; width: 100%; margin-bottom: 1.5rem; }
    th, td { border: 1px solid #d1d5db; padding: 0.5rem; }
    th { background: #f3f4f6; text-align: left; }
    .badge { display: inline-block; padding: 0.35rem 0.6rem; border-radius: 0.4rem; font-weight: 600; color: #111827; }
    .badge.good { background: #d1fae5; color: #065f46; }
    .badge.warn { background: #fef3c7; color: #92400e; }
    .badge.bad { background: #fee2e2; color: #991b1b; }
    .badge.sev-high { background: #fee2e2; color: #991b1b; }
    .badge.sev-medium { background: #fef3c7; color: #92400e; }
    .badge.sev-low { background: #e0f2fe; color: #0369a1; }
  </style>
</head>
<body>
  <h1>Dependency Compliance Report</h1>
  <p>Project license: {{ project_license or "none" }}</p>
  <p>Overall compliance: <span class=\"badge {{ badge_class }}\">{{ compliance }}%</span></p>
  <p>License conflicts: {{ conflicts }} of {{ total }} dependencies</p>
  <section>
    <h2>Vulnerability breakdown</h2>
    <table>
      <thead><tr><th>Critical</th><th>High</th><th>Medium</th><th>Low</th></tr></thead>
      <tbody>
        <tr>
          <td>{{ breakdown.critical }}</td>
          <td>{{ breakdown.high }}</td>
          <td>{{ breakdown.medium }}</td>
          <td>{{ breakdown.low }}</td>
        </tr>
      </tbody>
    </table>
  </section>
  <section>
    <h2>Non-compliant dependencies</h2>
    {% if non_compliant %}
    <table>
      <thead><tr><th>Name</th><th>Version</th><th>License</th><th>Severity</th><th>Reason</th></tr></thead>
      <tbody>
        {% for row in non_compliant %}
        <tr>
          <td>{{ row.name }}</td>
          <td>{{ row.version }}</td>
          <td>{{ row.license }}</td>
          <td><span class=\"badge sev-{{ row.severity }}\">{{ row.severity.title() }}</span></td>
          <td>{{ row.reason }}</td>
        </tr>
        {% endfor %}
      </tbody>
    </table>
    {% else %}
    <p>None</p>
    {% endif %}
  </section>
  {% if license_summary %}
  <section>
    <h2>License summary</h2>
    <table>
      <thead><tr><th>License</th><th>Dependencies</th></tr></thead>
      <tbody>
        {% for name, count in license_summary.items() %}
        <tr><td>{{ name }}</td><td>{{ count }}</td></tr>
        {% endfor %}
      </tbody>
    </table>
  </section>
  {% endif %}
</body>
</html>
"""
    )

    return template.render(
        project_license=report.project_license,
        compliance=report.overall_compliance_percent,
        badge_class=_badge_class(report),
        conflicts=report.license_conflict_count,
        total=report.total_dependencies,
        breakdown=report.vulnerability_breakdown.as_dict(),
        non_compliant=list(_non_compliant_rows(report)),
        license_summary=license_summary,
    )


def render_report(
    report: ComplianceReport, fmt: str, license_summary: Optional[dict[str, int]] = None
) -> str:
    fmt = fmt.lower()
    if fmt == "json":
        return render_json(report, license_summary)
    if fmt in {"markdown", "md"}:
        return render_markdown(report, license_summary)
    if fmt == "html":
        return render_html(report, license_summary)
    raise ValueError(f"Unsupported format: {fmt}")


def write_report(
    report: ComplianceReport,
    fmt: str,
    output: Path | None,
    license_summary: Optional[dict[str, int]] = None,
) -> str:
    content = render_report(report, fmt, license_summary)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(content)
    return content
