"""History reports rendered from the export snapshot."""

import json

from jinja2 import Environment, PackageLoader, select_autoescape


EXPORT_FORMATS = ("json", "markdown")


def _environment() -> Environment:
    return Environment(
        loader=PackageLoader("stepcalc", "templates"),
        autoescape=select_autoescape(),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_markdown(export: dict) -> str:
    """Render an export snapshot (see HistoryStore.export) as Markdown."""
    template = _environment().get_template("history.md.j2")
    return template.render(
        exported_at=export.get("exportedAt", ""),
        count=export.get("count", 0),
        entries=export.get("history", []),
    )


def render_export(export: dict, fmt: str = "json") -> str:
    """Render an export snapshot in one of EXPORT_FORMATS."""
    if fmt == "json":
        return json.dumps(export, indent=2)
    if fmt == "markdown":
        return render_markdown(export)
    raise ValueError(f"Unknown export format: {fmt}")
