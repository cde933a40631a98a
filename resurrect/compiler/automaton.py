"""State machine representation of a compiled format string.

A format string compiles to a linear chain of states, one per token, framed
by an ``init`` state, a single ``accept`` state and a generic ``error``
state. Transitions carry conditions that are evaluated in declaration
order; the first one that holds wins.
"""

from dataclasses import dataclass, replace
from enum import StrEnum, auto
from functools import cached_property

import structlog
from dataclasses_json import DataClassJsonMixin

from .types import FieldDefinition, FieldToken, FieldType, LiteralToken, OptionalToken, Token

logger = structlog.get_logger(__name__)

INIT_STATE = "init"
ACCEPT_STATE = "accept"
ERROR_STATE = "error"


class AutomatonError(RuntimeError):
    """Raised when a state graph is inconsistent."""


class StateKind(StrEnum):
    """Kinds of states in the parsing automaton."""

    INIT = auto()
    MATCH_LITERAL = auto()
    EXTRACT_FIELD = auto()
    MATCH_DELIMITER = auto()
    OPTIONAL_FIELD = auto()
    ACCEPT = auto()
    ERROR = auto()


class ActionKind(StrEnum):
    """Actions performed when a state is entered."""

    VALIDATE_LITERAL = auto()
    EXTRACT_FIELD = auto()
    MATCH_DELIMITER = auto()


class ConditionKind(StrEnum):
    """Transition conditions."""

    ALWAYS = auto()
    ON_MATCH = auto()
    ON_LENGTH = auto()


@dataclass(frozen=True)
class Condition(DataClassJsonMixin):
    """Condition guarding a transition, evaluated at the current offset."""

    kind: ConditionKind = ConditionKind.ALWAYS
    match: str | None = None
    length: int | None = None

    def holds(self, data: bytes, offset: int) -> bool:
        if self.kind == ConditionKind.ALWAYS:
            return True
        if self.kind == ConditionKind.ON_MATCH:
            if self.match is None:
                return False
            return data.startswith(self.match.encode("utf-8"), offset)
        if self.kind == ConditionKind.ON_LENGTH:
            if self.length is None:
                return False
            return offset + self.length <= len(data)
        return False

    def label(self) -> str:
        if self.kind == ConditionKind.ON_MATCH:
            return f"match: {self.match}"
        if self.kind == ConditionKind.ON_LENGTH:
            return f"length: {self.length}"
        return "ε"


ALWAYS = Condition()


@dataclass(frozen=True)
class Transition(DataClassJsonMixin):
    """Edge to another state."""

    target: str
    condition: Condition = ALWAYS


@dataclass(frozen=True)
class StateAction(DataClassJsonMixin):
    """Work done on entering a state."""

    kind: ActionKind
    expected: str | None = None
    target: str | None = None


@dataclass(frozen=True)
class StateMetadata(DataClassJsonMixin):
    """Field and optional-section details attached to a state."""

    field_name: str | None = None
    field_type: str | None = None
    width: int | None = None
    optional_prefix: str | None = None
    optional_suffix: str | None = None
    opener: str | None = None
    padding: str | None = None

    @property
    def marker(self) -> str | None:
        if self.optional_prefix is None:
            return None
        return (self.opener or "") + self.optional_prefix


@dataclass(frozen=True)
class State(DataClassJsonMixin):
    """A single state of the automaton."""

    id: str
    kind: StateKind
    name: str
    transitions: tuple[Transition, ...] = ()
    action: StateAction | None = None
    metadata: StateMetadata | None = None
    error_message: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.kind in (StateKind.ACCEPT, StateKind.ERROR)

    @property
    def expected(self) -> str | None:
        return self.action.expected if self.action else None


@dataclass(frozen=True)
class Automaton(DataClassJsonMixin):
    """Immutable compiled state graph for one message type."""

    message_name: str
    format_string: str
    states: tuple[State, ...]
    initial: str = INIT_STATE
    accept: str = ACCEPT_STATE
    error: str = ERROR_STATE

    @cached_property
    def _index(self) -> dict[str, State]:
        return {state.id: state for state in self.states}

    def state(self, state_id: str) -> State | None:
        """Look up a state by id."""
        return self._index.get(state_id)

    def next_state(self, state: State) -> State | None:
        """Return the state reached through the first declared transition."""
        if not state.transitions:
            return None
        return self.state(state.transitions[0].target)


class AutomatonBuilder:
    """Incrementally assemble and validate an automaton."""

    def __init__(self, message_name: str = "", format_string: str = "") -> None:
        self.message_name = message_name
        self.format_string = format_string
        self._states: dict[str, State] = {}
        self._transitions: dict[str, list[Transition]] = {}
        self._initial: str | None = None

    def add_state(self, state: State) -> "AutomatonBuilder":
        if state.id in self._states:
            raise AutomatonError(f"Duplicate state id {state.id}")
        self._states[state.id] = state
        self._transitions[state.id] = list(state.transitions)
        return self

    def set_initial(self, state_id: str) -> "AutomatonBuilder":
        if state_id not in self._states:
            raise AutomatonError(f"Cannot set initial state: state {state_id} does not exist")
        self._initial = state_id
        return self

    def add_transition(self, source: str, transition: Transition) -> "AutomatonBuilder":
        if source not in self._states:
            raise AutomatonError(f"Cannot add transition: source state {source} does not exist")
        if transition.target not in self._states:
            raise AutomatonError(
                f"Cannot add transition: destination state {transition.target} does not exist"
            )
        self._transitions[source].append(transition)
        return self

    def build(self) -> Automaton:
        if self._initial is None:
            raise AutomatonError("Cannot build automaton: no initial state set")

        accepts = [s.id for s in self._states.values() if s.kind == StateKind.ACCEPT]
        errors = [s.id for s in self._states.values() if s.kind == StateKind.ERROR]
        if len(accepts) != 1:
            raise AutomatonError(f"Automaton needs exactly one accept state, found {len(accepts)}")
        if len(errors) != 1:
            raise AutomatonError(f"Automaton needs exactly one error state, found {len(errors)}")

        self._validate_transitions()
        self._validate_reachability(errors[0])

        states = tuple(
            replace(state, transitions=tuple(self._transitions[state.id]))
            for state in self._states.values()
        )
        return Automaton(
            message_name=self.message_name,
            format_string=self.format_string,
            states=states,
            initial=self._initial,
            accept=accepts[0],
            error=errors[0],
        )

    def _validate_transitions(self) -> None:
        for state_id, transitions in self._transitions.items():
            always = [t for t in transitions if t.condition.kind == ConditionKind.ALWAYS]
            if len(always) > 1:
                raise AutomatonError(
                    f"State {state_id} has multiple 'always' transitions, which is ambiguous"
                )
            if always and transitions[-1] is not always[0]:
                logger.warning("always_transition_shadows_others", state=state_id)

    def _validate_reachability(self, error_state: str) -> None:
        assert self._initial is not None
        reachable: set[str] = set()
        queue = [self._initial]

        while queue:
            state_id = queue.pop(0)
            if state_id in reachable:
                continue
            reachable.add(state_id)
            queue.extend(t.target for t in self._transitions[state_id] if t.target not in reachable)

        for state_id in self._states:
            # The error state is entered on demand, not through transitions
            if state_id not in reachable and state_id != error_state:
                logger.warning("state_unreachable", state=state_id, message=self.message_name)


def _absorbs_padding(definition: FieldDefinition | None) -> bool:
    field_type = definition.type if definition else FieldType()
    return field_type.canonical in ("string", "enum") or (
        field_type.kind == "bytes" and field_type.width is None
    )


def normalize_tokens(
    tokens: list[Token], fields: dict[str, FieldDefinition] | None = None
) -> list[Token]:
    """Fold whitespace padding between a field and an optional section.

    ``{payload} [TIMEOUT:{seconds}]`` keeps the space out of the state
    chain: the payload runs up to the section marker, and the space is
    recorded as the section's padding. Only variable-length text fields
    (string, enum, unsized bytes) absorb padding; any other field keeps the
    literal and ends at it.
    """
    fields = fields or {}
    result: list[Token] = []
    i = 0

    while i < len(tokens):
        token = tokens[i]
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        prev = result[-1] if result else None

        if (
            isinstance(token, LiteralToken)
            and token.text
            and token.text.isspace()
            and isinstance(prev, FieldToken)
            and isinstance(nxt, OptionalToken)
            and _absorbs_padding(fields.get(prev.name))
        ):
            result.append(replace(nxt, padding=nxt.padding + token.text))
            i += 2
            continue

        result.append(token)
        i += 1

    return result


def _field_metadata(definition: FieldDefinition | None) -> tuple[str, int | None]:
    field_type = definition.type if definition else FieldType()
    return field_type.canonical, field_type.width


def compile_automaton(
    tokens: list[Token],
    fields: dict[str, FieldDefinition] | None = None,
    *,
    message_name: str = "",
    format_string: str = "",
    delimiter: str | None = None,
) -> Automaton:
    """Compile a token sequence into a linear automaton.

    Args:
        tokens: Token sequence, usually already normalised.
        fields: Field definitions by name; missing names default to string.
        message_name: Name of the message type, for diagnostics.
        format_string: Source format string, for diagnostics.
        delimiter: Literal text that compiles to ``match_delimiter`` states.

    Returns:
        The frozen automaton.
    """
    fields = fields or {}
    builder = AutomatonBuilder(message_name, format_string)

    builder.add_state(State(id=INIT_STATE, kind=StateKind.INIT, name="Initial State"))
    builder.add_state(State(id=ACCEPT_STATE, kind=StateKind.ACCEPT, name="Accept State"))
    builder.add_state(
        State(id=ERROR_STATE, kind=StateKind.ERROR, name="Error State", error_message="Parse error")
    )
    builder.set_initial(INIT_STATE)

    current = INIT_STATE

    for counter, token in enumerate(tokens):
        if isinstance(token, LiteralToken):
            if delimiter and token.text == delimiter:
                state = State(
                    id=f"delimiter_{counter}",
                    kind=StateKind.MATCH_DELIMITER,
                    name=f'Match delimiter "{token.text}"',
                    action=StateAction(kind=ActionKind.MATCH_DELIMITER, expected=token.text),
                )
            else:
                state = State(
                    id=f"literal_{counter}",
                    kind=StateKind.MATCH_LITERAL,
                    name=f'Match literal "{token.text}"',
                    action=StateAction(kind=ActionKind.VALIDATE_LITERAL, expected=token.text),
                )
        elif isinstance(token, FieldToken):
            field_type, width = _field_metadata(fields.get(token.name))
            state = State(
                id=f"extract_{counter}",
                kind=StateKind.EXTRACT_FIELD,
                name=f"Extract field: {token.name}",
                action=StateAction(kind=ActionKind.EXTRACT_FIELD, target=token.name),
                metadata=StateMetadata(field_name=token.name, field_type=field_type, width=width),
            )
        elif isinstance(token, OptionalToken):
            field_type, width = _field_metadata(fields.get(token.name))
            state = State(
                id=f"optional_{counter}",
                kind=StateKind.OPTIONAL_FIELD,
                name=f"Optional field: {token.name}",
                action=StateAction(kind=ActionKind.EXTRACT_FIELD, target=token.name),
                metadata=StateMetadata(
                    field_name=token.name,
                    field_type=field_type,
                    width=width,
                    optional_prefix=token.prefix,
                    optional_suffix=token.suffix,
                    opener=token.opener,
                    padding=token.padding,
                ),
            )
        else:
            raise AutomatonError(f"Unknown token {token!r}")

        builder.add_state(state)
        builder.add_transition(current, Transition(target=state.id))
        current = state.id

    builder.add_transition(current, Transition(target=ACCEPT_STATE))

    automaton = builder.build()
    logger.debug(
        "automaton_compiled", message=message_name, states=len(automaton.states), tokens=len(tokens)
    )
    return automaton


def state_table(automaton: Automaton) -> list[dict[str, str]]:
    """Flatten an automaton into rows for display."""
    rows = []
    for state in automaton.states:
        rows.append(
            {
                "id": state.id,
                "kind": str(state.kind),
                "name": state.name,
                "next": ", ".join(t.target for t in state.transitions),
            }
        )
    return rows

