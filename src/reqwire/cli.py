"""reqwire CLI - Command-line interface.

Usage:
    reqwire send <url> [-X METHOD] [-q key=value] [-H key=value] [--json-body TEXT]
"""

import io
import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.syntax import Syntax

from reqwire.errors import ReqwireError, StatusError
from reqwire.modules.options import key_pairs
from reqwire.types import File, HttpMethod, Result

console = Console()
app = typer.Typer(
    name="reqwire",
    help="Send HTTP requests with per-phase timeouts and retries",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    """Set up logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
    )

    logging.getLogger("reqwire").setLevel(level)

    # Quiet down httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def split_pairs(values: list[str] | None, option_name: str) -> list[str]:
    """Flatten ``key=value`` arguments into ``[key, value, ...]``."""
    flat: list[str] = []
    for value in values or []:
        key, sep, rest = value.partition("=")
        if not sep:
            raise typer.BadParameter(f"expected key=value, got {value!r}", param_hint=option_name)
        flat.extend([key, rest])
    return flat


@app.command()
def send(
    url: str = typer.Argument(..., help="Target URL"),
    method: str = typer.Option(
        "GET",
        "--method",
        "-X",
        help="HTTP method (GET, POST, PUT, PATCH, DELETE, HEAD, OPTIONS, TRACE, CONNECT)",
    ),
    query: list[str] = typer.Option(
        None,
        "--query",
        "-q",
        help="Query parameter as key=value (repeatable)",
    ),
    header: list[str] = typer.Option(
        None,
        "--header",
        "-H",
        help="Header as key=value (repeatable)",
    ),
    json_body: str = typer.Option(
        None,
        "--json-body",
        help="JSON request body",
    ),
    form: list[str] = typer.Option(
        None,
        "--form",
        "-F",
        help="Form field as key=value (repeatable)",
    ),
    upload: list[str] = typer.Option(
        None,
        "--file",
        help="Multipart file as field=path (repeatable); --form fields are sent alongside",
    ),
    retries: int = typer.Option(
        0,
        "--retries",
        "-r",
        min=0,
        help="Number of retries after a failed attempt",
    ),
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Transport config file (YAML or JSON)",
        exists=True,
    ),
    output: Path = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the raw response body to this file",
    ),
    no_status_errors: bool = typer.Option(
        False,
        "--no-status-errors",
        help="Do not treat status codes >= 300 as errors",
    ),
    output_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output the result as JSON",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Send a request and print the response."""
    import reqwire

    setup_logging(verbose=verbose)

    try:
        http_method = HttpMethod(method.upper())
    except ValueError:
        console.print(f"[red]Invalid HTTP method: {method}[/red]")
        raise typer.Exit(2)

    opts: list[reqwire.Option] = [
        reqwire.with_retry_times(retries),
        reqwire.with_status_errors(not no_status_errors),
    ]
    if config_path is not None:
        try:
            opts.append(reqwire.with_config(reqwire.load_config(str(config_path))))
        except ValueError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(2)
    if query:
        opts.append(reqwire.with_query(*split_pairs(query, "--query")))
    if header:
        opts.append(reqwire.with_header(*split_pairs(header, "--header")))

    form_pairs = split_pairs(form, "--form")
    if upload:
        files = [
            File(field_name=field, path=path)
            for field, path in key_pairs(split_pairs(upload, "--file"))
        ]
        opts.append(reqwire.with_body_files(files, *form_pairs))
    elif form_pairs:
        opts.append(reqwire.with_body_form(*form_pairs))
    if json_body is not None:
        try:
            opts.append(reqwire.with_body_json(json.loads(json_body)))
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid --json-body:[/red] {e}")
            raise typer.Exit(2)

    body = io.BytesIO()
    opts.append(reqwire.with_response_body_write_to(body))

    console.print(f"\n[bold]Sending:[/bold] {http_method.value} {url}\n")

    try:
        result = reqwire.request(http_method, url, *opts)
    except StatusError as e:
        _print_result(e.result, e.body.encode("utf-8"), output_json, failed=True)
        raise typer.Exit(1)
    except ReqwireError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2)

    if output is not None:
        output.write_bytes(body.getvalue())
        console.print(f"[green]✓[/green] Body written to {output}")
        return

    _print_result(result, body.getvalue(), output_json)


def _print_result(result: Result | None, body: bytes, output_json: bool, failed: bool = False) -> None:
    """Print a result as JSON or with rich formatting."""
    status_code = result.status_code if result is not None else 0
    text = body.decode("utf-8", errors="replace")

    if output_json:
        print(json.dumps({
            "status_code": status_code,
            "attempts": result.attempts if result is not None else 0,
            "elapsed_ms": round(result.elapsed_ms, 1) if result is not None else 0,
            "body": text,
        }, indent=2))
        return

    color = "red" if failed else "green"
    console.print(Panel(
        f"[{color}]{status_code}[/{color}]\n\n"
        f"Attempts: {result.attempts if result is not None else 0}\n"
        f"Time: {result.elapsed_ms if result is not None else 0:.0f}ms",
        title="Response",
        border_style=color,
    ))

    if not text:
        return
    content_type = ""
    if result is not None and result.response is not None:
        content_type = result.response.headers.get("content-type", "")
    pretty = _pretty_json(text) if "json" in content_type else None
    if pretty is not None:
        console.print(Syntax(pretty, "json"))
    else:
        console.print(text)


def _pretty_json(text: str) -> str | None:
    """Indent a JSON document, or return None if it does not parse."""
    try:
        return json.dumps(json.loads(text), indent=2, ensure_ascii=False)
    except json.JSONDecodeError:
        return None


@app.command()
def version() -> None:
    """Show version information."""
    from reqwire import __version__
    console.print(f"reqwire version {__version__}")


if __name__ == "__main__":
    app()
