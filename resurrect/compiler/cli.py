"""Command-line interface for inspecting and exercising message formats."""

from __future__ import annotations

import json
import logging
import re
import sys
from typing import Any

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from resurrect.compiler import graph
from resurrect.compiler.analysis import FormatAnalysis, analyze
from resurrect.compiler.automaton import state_table
from resurrect.compiler.message import CompiledMessage, DefinitionError, compile_message
from resurrect.compiler.tokenizer import FormatSyntaxError
from resurrect.compiler.types import FieldToken, LiteralToken, MessageDefinition, OptionalToken
from resurrect.logging import setup_logging
from resurrect.runtime.codec import MessageCodec

_ESCAPE_RE = re.compile(r"\\(x[0-9a-fA-F]{2}|[nrt0\\])")
_ESCAPES = {"n": b"\n", "r": b"\r", "t": b"\t", "0": b"\x00", "\\": b"\\"}


def unescape(text: str) -> bytes:
    """Turn ``\\n``, ``\\r``, ``\\t``, ``\\0``, ``\\\\`` and ``\\xNN`` escapes into bytes."""
    out = bytearray()
    pos = 0
    for m in _ESCAPE_RE.finditer(text):
        out += text[pos : m.start()].encode("utf-8")
        code = m.group(1)
        out += bytes([int(code[1:], 16)]) if code.startswith("x") else _ESCAPES[code]
        pos = m.end()
    out += text[pos:].encode("utf-8")
    return bytes(out)


def escape(data: bytes) -> str:
    """Render bytes as printable text, escaping control and non-ASCII bytes."""
    out = []
    for b in data:
        c = chr(b)
        if c == "\\":
            out.append("\\\\")
        elif c == "\n":
            out.append("\\n")
        elif c == "\r":
            out.append("\\r")
        elif c == "\t":
            out.append("\\t")
        elif 0x20 <= b < 0x7F:
            out.append(c)
        else:
            out.append(f"\\x{b:02x}")
    return "".join(out)


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return escape(bytes(value))
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _load_definition(
    format_string: str | None, input_file: str | None, name: str
) -> MessageDefinition:
    if bool(format_string) == bool(input_file):
        raise click.UsageError("Pass exactly one of --format or --input")

    if input_file:
        with open(input_file, encoding="utf-8") as f:
            return MessageDefinition.from_json(f.read())

    assert format_string is not None
    return MessageDefinition(name=name, format=format_string)


def _compile(format_string: str | None, input_file: str | None, name: str) -> CompiledMessage:
    definition = _load_definition(format_string, input_file, name)
    try:
        return compile_message(definition)
    except (FormatSyntaxError, DefinitionError) as e:
        print(f"Error: {e}")
        sys.exit(1)


def definition_options(f: Any) -> Any:
    f = click.option("--name", "-n", default="Message", help="Message name when using --format")(f)
    f = click.option("--input", "-i", "input_file", help="Message definition JSON file")(f)
    f = click.option("--format", "-f", "format_string", help="Format string")(f)
    return f


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--log-json", is_flag=True, help="Emit logs as JSON")
def cli(verbose: bool, log_json: bool) -> None:
    """Resurrect message format compiler."""
    setup_logging(logging.DEBUG if verbose else None, json=log_json)


@cli.command()
@definition_options
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(format_string: str | None, input_file: str | None, name: str, output_json: bool) -> None:
    """Display tokens, states and analysis of a message format."""
    compiled = _compile(format_string, input_file, name)
    analysis = analyze(compiled)

    if output_json:
        _output_json(compiled, analysis)
    else:
        _output_plain(compiled, analysis)


def _format_size(size: int | None) -> str:
    """Format a size value, handling None for unbounded."""
    return "unbounded" if size is None else str(size)


def _output_json(compiled: CompiledMessage, analysis: FormatAnalysis) -> None:
    data = {
        "message": compiled.name,
        "format": compiled.definition.format,
        "fields": [f.to_dict() for f in compiled.fields],
        "tokens": [t.to_dict() for t in compiled.tokens],
        "automaton": compiled.automaton.to_dict(),
        "analysis": analysis.to_dict(),
    }
    print(json.dumps(data, indent=2, default=_json_default))


def _token_value(token: LiteralToken | FieldToken | OptionalToken) -> str:
    if isinstance(token, LiteralToken):
        return f'"{escape(token.text.encode("utf-8"))}"'
    if isinstance(token, FieldToken):
        return f"{{{token.name}}}"
    return escape(f"{token.marker}{{{token.name}}}{token.suffix}".encode("utf-8"))


def _output_plain(compiled: CompiledMessage, analysis: FormatAnalysis) -> None:
    """Output format info using rich text formatting."""
    console = Console()

    console.print(f"[bold cyan]Message[/bold cyan] {compiled.name}")
    summary = Table(show_header=False, box=None, padding=(0, 2, 0, 2))
    summary.add_column("Label", style="dim")
    summary.add_column("Value", style="white")
    summary.add_row("Format", Text(escape(compiled.definition.format.encode("utf-8"))))
    summary.add_row("Field order", ", ".join(analysis.field_order) or "-")
    summary.add_row("Required", ", ".join(analysis.required_fields) or "-")
    summary.add_row("Optional", ", ".join(analysis.optional_fields) or "-")
    delimiters = ", ".join(f'"{escape(d.encode("utf-8"))}"' for d in analysis.delimiters)
    summary.add_row("Delimiters", Text(delimiters or "-"))
    if analysis.min_size == analysis.max_size:
        size_str = f"{analysis.min_size} bytes"
    else:
        size_str = f"{analysis.min_size}-{_format_size(analysis.max_size)} bytes"
    summary.add_row("Size", f"{size_str} ({analysis.size_kind.value})")
    summary.add_row("Complexity", str(analysis.complexity))
    console.print(summary)
    console.print()

    console.print("[bold cyan]Tokens[/bold cyan]")
    token_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    token_table.add_column("#", style="dim", justify="right")
    token_table.add_column("Kind", style="yellow")
    token_table.add_column("Value", style="white")
    for i, token in enumerate(compiled.tokens):
        token_table.add_row(str(i), token.kind, Text(_token_value(token)))
    console.print(token_table)
    console.print()

    console.print("[bold cyan]States[/bold cyan]")
    state_view = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    state_view.add_column("Id", style="white")
    state_view.add_column("Kind", style="yellow")
    state_view.add_column("Name", style="dim")
    state_view.add_column("Next", style="green")
    for row in state_table(compiled.automaton):
        name_text = Text(escape(row["name"].encode("utf-8")))
        state_view.add_row(row["id"], row["kind"], name_text, row["next"])
    console.print(state_view)

    if analysis.ambiguities:
        console.print()
        console.print("[bold yellow]Ambiguities[/bold yellow]")
        for ambiguity in analysis.ambiguities:
            console.print(f"  {ambiguity}", markup=False)


@cli.command("graph")
@definition_options
@click.option("--output", "-o", "output_file", help="Output file (default stdout)")
def graph_(
    format_string: str | None, input_file: str | None, name: str, output_file: str | None
) -> None:
    """Render the message automaton as a Graphviz DOT graph."""
    compiled = _compile(format_string, input_file, name)
    dot = graph.render(compiled.automaton)

    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(dot)
    else:
        print(dot, end="")


@cli.command()
@definition_options
@click.option("--hex", "as_hex", is_flag=True, help="DATA is hex encoded")
@click.option("--offset", default=0, help="Start offset within DATA")
@click.argument("data")
def parse(
    format_string: str | None,
    input_file: str | None,
    name: str,
    as_hex: bool,
    offset: int,
    data: str,
) -> None:
    """Parse DATA (with \\n, \\t, \\xNN escapes) and print the result as JSON."""
    compiled = _compile(format_string, input_file, name)
    buffer = bytes.fromhex(data) if as_hex else unescape(data)

    result = MessageCodec(compiled.definition).parse(buffer, offset)
    print(json.dumps(result.to_dict(encode_json=False), indent=2, default=_json_default))
    if not result.success:
        sys.exit(1)


@cli.command()
@definition_options
@click.option("--hex", "as_hex", is_flag=True, help="Print the output as hex")
@click.argument("message")
def serialize(
    format_string: str | None, input_file: str | None, name: str, as_hex: bool, message: str
) -> None:
    """Validate and serialize MESSAGE, a JSON object of field values."""
    compiled = _compile(format_string, input_file, name)
    codec = MessageCodec(compiled.definition)
    try:
        values = json.loads(message)
    except json.JSONDecodeError as e:
        print(f"Error: MESSAGE is not valid JSON: {e}")
        sys.exit(1)
    if not isinstance(values, dict):
        print("Error: MESSAGE must be a JSON object")
        sys.exit(1)

    validation = codec.validate(values)
    if not validation.valid:
        for issue in validation.errors:
            print(f"{issue.field}: {issue.message} ({issue.reason})")
        sys.exit(1)

    result = codec.serialize(values)
    if not result.success or result.data is None:
        assert result.error is not None
        print(f"Error: {result.error.message}")
        sys.exit(1)

    print(result.data.hex() if as_hex else escape(result.data))


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
