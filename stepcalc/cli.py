"""CLI interface for StepCalc.

Commands:
- eval / derive / integrate / solve: arithmetic and calculus with step traces
- stats / matrix: statistics and linear algebra
- graph / range: sample 2D series or 3D meshes and manage the plot range
- history: list, show, remove, clear and export past calculations
- mode / session / config: persisted settings
- ask: send a word problem or photo to the remote solver
- interactive: guided prompt loop
"""

import base64
import json
import sys
from pathlib import Path

import click
import questionary
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .app_state import CalculatorApp
from .config import CalculatorConfig, config_path, load_config, save_config
from .engine import CalculationEngine
from .errors import RangeError, ServiceError
from .logging_utils import configure_logging
from .matrix_engine import MATRIX_OPERATIONS
from .output_helper import OutputHelper
from .persistence import DISPLAY_MODES, StateStore
from .report import EXPORT_FORMATS, render_export
from .result import CalculationResult, OperationType
from .solver_client import SolveRequest, SolverClient, parse_solution


console = Console()


def _get_app(ctx) -> CalculatorApp:
    """Build the app for the project path on the click context."""
    project_path = ctx.obj["project_path"]
    config = load_config(project_path)
    return CalculatorApp(
        engine=CalculationEngine(config=config),
        store=StateStore(project_path),
        config=config,
    )


def _helper(app: CalculatorApp) -> OutputHelper:
    return OutputHelper(config=app.config.output)


def _show_result(app: CalculatorApp, result: CalculationResult, exit_on_error: bool = True):
    """Print a result with its steps; failed results exit with status 1."""
    if not result.ok:
        console.print(f"[red]Error: {escape(result.error)}[/red]")
        if exit_on_error:
            sys.exit(1)
        return

    helper = _helper(app)
    text = "\n".join(helper.result_lines(result.result))
    console.print(f"[bold green]{escape(text)}[/bold green]")

    steps = helper.steps(result.steps)
    if steps:
        console.print("[bold]Steps:[/bold]")
        for step in steps:
            console.print(f"  [dim]{escape(step)}[/dim]")


def _parse_numbers(values: tuple) -> list:
    numbers = []
    for value in values:
        for token in value.replace(",", " ").split():
            try:
                numbers.append(float(token) if any(c in token for c in ".eE") else int(token))
            except ValueError:
                raise click.BadParameter(f"Not a number: {token}")
    return numbers


def _parse_matrix(text: str, name: str):
    if text is None:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Matrix {name} must be JSON, e.g. [[1, 2], [3, 4]] ({e})")


def _format_range(value_range) -> str:
    low, high = value_range
    return f"[{low:g}, {high:g}]"


@click.group()
@click.version_option(version=__version__, prog_name="stepcalc")
@click.option(
    "--path",
    "-p",
    default=".",
    help="Project path holding .stepcalc/ (default: current directory)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx, path: str, verbose: bool):
    """StepCalc - calculator with step-by-step traces.

    Covers:
    - Arithmetic, derivatives, integrals and equations
    - Statistics and matrices
    - 2D and 3D graph sampling
    - A persistent history of the last calculations
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["project_path"] = str(Path(path).resolve())


# --- Calculation Commands ---


@main.command("eval")
@click.argument("expression")
@click.pass_context
def eval_cmd(ctx, expression: str):
    """Evaluate an arithmetic expression.

    Examples:
        stepcalc eval "2 + 3 × 4"
        stepcalc eval "sqrt(2) * pi"
    """
    app = _get_app(ctx)
    _show_result(app, app.run_expression(expression))


@main.command()
@click.argument("expression")
@click.option("--var", "variable", default="x", help="Variable to differentiate by")
@click.pass_context
def derive(ctx, expression: str, variable: str):
    """Differentiate an expression (result is simplified)."""
    app = _get_app(ctx)
    _show_result(app, app.run_derivative(expression, variable))


@main.command()
@click.argument("expression")
@click.option("--var", "variable", default="x", help="Variable of integration")
@click.pass_context
def integrate(ctx, expression: str, variable: str):
    """Find an antiderivative (no constant is added)."""
    app = _get_app(ctx)
    _show_result(app, app.run_integral(expression, variable))


@main.command()
@click.argument("equation")
@click.option("--var", "variable", default="x", help="Variable to solve for")
@click.pass_context
def solve(ctx, equation: str, variable: str):
    """Solve an equation, e.g. "x^2 = 4"."""
    app = _get_app(ctx)
    _show_result(app, app.run_equation(equation, variable))


@main.command()
@click.argument("values", nargs=-1, required=True)
@click.pass_context
def stats(ctx, values: tuple):
    """Descriptive statistics of comma- or space-separated values.

    Examples:
        stepcalc stats 1,2,3,4,5
        stepcalc stats -- -1 0 1
    """
    data = _parse_numbers(values)
    app = _get_app(ctx)
    _show_result(app, app.run_statistics(data))


@main.command()
@click.argument("operation", type=click.Choice(MATRIX_OPERATIONS))
@click.option("--a", "-a", "matrix_a", required=True, help="Matrix A as JSON")
@click.option("--b", "-b", "matrix_b", help="Matrix B as JSON (add, multiply)")
@click.pass_context
def matrix(ctx, operation: str, matrix_a: str, matrix_b: str):
    """Matrix add, multiply, determinant, inverse or transpose.

    Examples:
        stepcalc matrix determinant -a "[[1, 2], [3, 4]]"
        stepcalc matrix add -a "[[1, 2], [3, 4]]" -b "[[5, 6], [7, 8]]"
    """
    a = _parse_matrix(matrix_a, "A")
    b = _parse_matrix(matrix_b, "B")
    app = _get_app(ctx)
    _show_result(app, app.run_matrix(operation, a, b))


# --- Graph Commands ---


@main.command()
@click.argument("expression")
@click.option("--3d", "surface", is_flag=True, help="Sample f(x, y) as a surface mesh")
@click.option("--min", "range_min", type=float, help="Range minimum (saved)")
@click.option("--max", "range_max", type=float, help="Range maximum (saved)")
@click.option("--json", "as_json", is_flag=True, help="Print the plot data as JSON")
@click.pass_context
def graph(ctx, expression: str, surface: bool, range_min, range_max, as_json: bool):
    """Sample an expression for plotting over the current range.

    2D drops undefined points; 3D replaces them with 0.
    """
    app = _get_app(ctx)

    if range_min is not None or range_max is not None:
        low, high = app.state.graph_range
        try:
            app.set_graph_range((
                low if range_min is None else range_min,
                high if range_max is None else range_max,
            ))
        except RangeError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            sys.exit(1)

    result = app.run_surface(expression) if surface else app.run_graph(expression)

    if as_json and result.ok:
        click.echo(json.dumps(result.graph_data))
        return
    _show_result(app, result)


@main.group("range")
def range_group():
    """Show or change the plot range."""
    pass


@range_group.command("show")
@click.pass_context
def range_show(ctx):
    """Show the current plot range."""
    app = _get_app(ctx)
    console.print(f"Range: {_format_range(app.state.graph_range)}")


@range_group.command("set")
@click.argument("range_min", type=float)
@click.argument("range_max", type=float)
@click.pass_context
def range_set(ctx, range_min: float, range_max: float):
    """Set the plot range (use -- before negative values)."""
    app = _get_app(ctx)
    try:
        app.set_graph_range((range_min, range_max))
    except RangeError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)
    console.print(f"[green]Range: {_format_range(app.state.graph_range)}[/green]")


@range_group.command("zoom-in")
@click.pass_context
def range_zoom_in(ctx):
    """Shrink the range to 70% around its center."""
    app = _get_app(ctx)
    console.print(f"[green]Range: {_format_range(app.zoom_in())}[/green]")


@range_group.command("zoom-out")
@click.pass_context
def range_zoom_out(ctx):
    """Grow the range to 130% around its center."""
    app = _get_app(ctx)
    console.print(f"[green]Range: {_format_range(app.zoom_out())}[/green]")


@range_group.command("reset")
@click.pass_context
def range_reset(ctx):
    """Restore the default range [-10, 10]."""
    app = _get_app(ctx)
    console.print(f"[green]Range: {_format_range(app.reset_graph())}[/green]")


# --- History Commands ---


@main.group()
def history():
    """Browse and manage calculation history."""
    pass


@history.command("list")
@click.option("--limit", "-n", default=10, help="Number of entries to show (0 = all)")
@click.option(
    "--type",
    "-t",
    "operation_type",
    type=click.Choice([t.value for t in OperationType]),
    help="Only show one operation type",
)
@click.option("--search", "-q", help="Search expressions and results (case-insensitive)")
@click.pass_context
def history_list(ctx, limit: int, operation_type: str, search: str):
    """List recent calculations, newest first."""
    app = _get_app(ctx)
    helper = _helper(app)

    entries = app.history.search(search) if search else app.history.entries
    if operation_type:
        entries = [e for e in entries if e.operation_type.value == operation_type]

    if not entries:
        console.print("[yellow]No calculations in history.[/yellow]")
        return

    shown = entries[:limit] if limit > 0 else entries

    table = Table(title="Calculation History")
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Expression")
    table.add_column("Result", style="green")
    table.add_column("Time", style="dim")

    for entry in shown:
        table.add_row(
            entry.id,
            entry.operation_type.value,
            escape(helper.cell(entry.expression)),
            escape(helper.cell(entry.result)),
            entry.timestamp[:19],
        )

    console.print(table)
    if len(shown) < len(entries):
        console.print(f"[dim]{len(entries) - len(shown)} older entries not shown[/dim]")


@history.command("show")
@click.argument("entry_id")
@click.pass_context
def history_show(ctx, entry_id: str):
    """Show one calculation with its steps."""
    app = _get_app(ctx)
    entry = app.history.get(entry_id)
    if not entry:
        console.print(f"[red]History entry not found: {escape(entry_id)}[/red]")
        sys.exit(1)

    console.print()
    console.print(f"[bold]{entry.id}[/bold]: {escape(entry.expression)}")
    console.print(f"  Type: {entry.operation_type.value}")
    console.print(f"  Time: {entry.timestamp}")
    _show_result(app, entry.to_result())


@history.command("remove")
@click.argument("entry_id")
@click.pass_context
def history_remove(ctx, entry_id: str):
    """Remove one calculation (no-op if it does not exist)."""
    app = _get_app(ctx)
    if app.remove_from_history(entry_id):
        console.print(f"[green]Removed {escape(entry_id)}[/green]")
    else:
        console.print(f"[yellow]No entry {escape(entry_id)}; nothing removed[/yellow]")


@history.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def history_clear(ctx, yes: bool):
    """Delete all history."""
    app = _get_app(ctx)
    if not yes and not click.confirm(f"Delete all {len(app.history)} entries?"):
        console.print("[yellow]Cancelled[/yellow]")
        return
    app.clear_history()
    console.print("[green]History cleared.[/green]")


@history.command("export")
@click.option("--format", "-f", "fmt", type=click.Choice(EXPORT_FORMATS), default="json")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write to file instead of stdout")
@click.pass_context
def history_export(ctx, fmt: str, output: str):
    """Export history as JSON or Markdown."""
    app = _get_app(ctx)
    text = render_export(app.export_history(), fmt)
    if output:
        Path(output).write_text(text)
        console.print(f"[green]Exported {len(app.history)} entries to {escape(output)}[/green]")
    else:
        click.echo(text)


# --- Settings Commands ---


@main.command()
@click.argument("display_mode", required=False, type=click.Choice(DISPLAY_MODES))
@click.pass_context
def mode(ctx, display_mode: str):
    """Show or set the display mode."""
    app = _get_app(ctx)
    if display_mode:
        app.set_display_mode(display_mode)
    console.print(f"Display mode: [cyan]{app.state.display_mode}[/cyan]")


@main.command()
@click.option("--new", "new_session", is_flag=True, help="Generate a new session token")
@click.pass_context
def session(ctx, new_session: bool):
    """Show the session token."""
    app = _get_app(ctx)
    if new_session:
        app.generate_user_session()
    console.print(f"Session: [cyan]{app.state.user_session}[/cyan]")


@main.group()
def config():
    """Show or initialize configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx):
    """Print the effective configuration."""
    cfg = load_config(ctx.obj["project_path"])
    click.echo(json.dumps(cfg.to_dict(), indent=2))


@config.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing config.json")
@click.pass_context
def config_init(ctx, force: bool):
    """Write a config.json with default settings."""
    project_path = ctx.obj["project_path"]
    if config_path(project_path).exists() and not force:
        console.print("[yellow]config.json already exists (use --force to overwrite)[/yellow]")
        return
    written = save_config(project_path, CalculatorConfig())
    console.print(f"[green]Wrote {escape(str(written))}[/green]")


# --- Remote Solver ---


@main.command()
@click.argument("prompt", required=False, default="")
@click.option("--image", "-i", type=click.Path(exists=True, dir_okay=False), help="Photo of the problem")
@click.option("--max-tokens", type=int, help="Token budget for the answer")
@click.option("--evaluate", "-e", is_flag=True, help="Evaluate the transcribed problem locally")
@click.pass_context
def ask(ctx, prompt: str, image: str, max_tokens: int, evaluate: bool):
    """Ask the remote solver about a word problem or a photo."""
    if not prompt and not image:
        raise click.UsageError("Give a PROMPT or --image")

    app = _get_app(ctx)
    image_base64 = base64.b64encode(Path(image).read_bytes()).decode() if image else None
    app.set_uploaded_image(image_base64)

    client = SolverClient(app.config.solver)
    try:
        response = client.solve(SolveRequest(prompt=prompt, image_base64=image_base64, max_tokens=max_tokens))
    except ServiceError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    app.set_image_analysis_result(response.text)
    console.print(escape(response.text))
    if response.usage:
        console.print(
            f"[dim]Tokens: {response.usage['input_tokens']} in, "
            f"{response.usage['output_tokens']} out[/dim]"
        )

    if evaluate:
        problem = parse_solution(response.text).get("problem") or prompt
        console.print(f"\n[bold]Evaluating:[/bold] {escape(problem)}")
        _show_result(app, app.run_expression(problem))


# --- Interactive Mode ---


INTERACTIVE_CHOICES = [
    "Evaluate",
    "Derivative",
    "Integral",
    "Solve equation",
    "Statistics",
    "Graph",
    "Quit",
]


@main.command()
@click.pass_context
def interactive(ctx):
    """Prompt for calculations until you choose Quit."""
    app = _get_app(ctx)
    handlers = {
        "Evaluate": app.run_expression,
        "Derivative": app.run_derivative,
        "Integral": app.run_integral,
        "Solve equation": app.run_equation,
        "Graph": app.run_graph,
    }

    while True:
        choice = questionary.select("Operation:", choices=INTERACTIVE_CHOICES).ask()
        if choice is None or choice == "Quit":
            break

        text = questionary.text("Input:").ask()
        if text is None:
            break
        if not text.strip():
            continue

        if choice == "Statistics":
            try:
                result = app.run_statistics(_parse_numbers((text,)))
            except click.BadParameter as e:
                console.print(f"[red]Error: {escape(e.message)}[/red]")
                continue
        else:
            result = handlers[choice](text)
        _show_result(app, result, exit_on_error=False)
        console.print()


if __name__ == "__main__":
    main()
