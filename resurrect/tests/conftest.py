"""Unit tests configuration file."""

import pytest

from resurrect.compiler.types import MessageDefinition


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture
def login_definition():
    return MessageDefinition.from_dict(
        {
            "name": "Login",
            "direction": "request",
            "format": "LOGIN {username}\n",
            "fields": [{"name": "username", "type": {"kind": "string"}, "required": True}],
        }
    )


@pytest.fixture
def dic_definition():
    return MessageDefinition.from_dict(
        {
            "name": "Start",
            "direction": "request",
            "format": "START {id} | {payload} [TIMEOUT:{seconds}]\n\n",
            "fields": [
                {"name": "id", "type": {"kind": "number"}},
                {"name": "payload", "type": {"kind": "string"}},
                {"name": "seconds", "type": {"kind": "number"}, "required": False},
            ],
        }
    )


@pytest.fixture
def user_definition():
    return MessageDefinition.from_dict(
        {
            "name": "User",
            "format": "USER {name} {age} {role}\r\n",
            "fields": [
                {
                    "name": "name",
                    "type": {"kind": "string"},
                    "validation": {"min_length": 2, "max_length": 16, "pattern": "^[a-z]+$"},
                },
                {"name": "age", "type": {"kind": "number"}, "validation": {"min": 0, "max": 150}},
                {"name": "role", "type": {"kind": "enum", "values": ["admin", "guest"]}},
            ],
        }
    )
