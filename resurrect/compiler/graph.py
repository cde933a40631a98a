"""Graphviz DOT rendering of compiled automata."""

from jinja2 import Environment, PackageLoader

from .automaton import Automaton

_DOT_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\\\n", "\r": "\\\\r", "\t": "\\\\t"}


def dot_escape(text: str) -> str:
    """Escape text for a quoted DOT string, keeping control characters visible."""
    return "".join(_DOT_ESCAPES.get(c, c) for c in str(text))


env = Environment(
    loader=PackageLoader("resurrect.compiler", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)
env.filters["dot_escape"] = dot_escape

template = env.get_template("automaton.dot.j2")


def render(automaton: Automaton) -> str:
    """Render an automaton as a Graphviz digraph."""
    return template.render(automaton=automaton)
