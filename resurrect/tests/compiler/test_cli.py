"""Tests for CLI interface."""

import json
import os
import tempfile

from click.testing import CliRunner

from resurrect.compiler.cli import cli, escape, unescape

DIC_FORMAT = "START {id} | {payload} [TIMEOUT:{seconds}]\n\n"


def write_definition(definition):
    with tempfile.NamedTemporaryFile("w", suffix=".json", delete=False, encoding="utf-8") as f:
        f.write(definition.to_json())
        return f.name


def describe_info_command():
    def prints_tokens_and_states(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-f", "LOGIN {username}\n", "-n", "Login"])
        expect(result.exit_code) == 0
        expect("Login" in result.output) == True
        expect("extract_1" in result.output) == True
        expect("username" in result.output) == True

    def outputs_json(expect, dic_definition):
        runner = CliRunner()
        input_file = write_definition(dic_definition)
        try:
            result = runner.invoke(cli, ["info", "-i", input_file, "--json"])
            expect(result.exit_code) == 0
            data = json.loads(result.output)
            expect(data["message"]) == "Start"
            expect(data["analysis"]["field_order"]) == ["id", "payload", "seconds"]
            expect(data["automaton"]["states"][0]["id"]) == "init"
            expect(data["tokens"][4]["kind"]) == "optional"
        finally:
            os.unlink(input_file)

    def reports_format_errors(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info", "-f", "LOGIN {username"])
        expect(result.exit_code) == 1
        expect("Unclosed placeholder" in result.output) == True

    def requires_exactly_one_source(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["info"])
        expect(result.exit_code) == 2


def describe_graph_command():
    def writes_dot_file(expect):
        runner = CliRunner()
        with tempfile.NamedTemporaryFile(suffix=".dot", delete=False) as f:
            output_file = f.name

        try:
            result = runner.invoke(cli, ["graph", "-f", "A {x}\n", "-o", output_file])
            expect(result.exit_code) == 0
            with open(output_file, encoding="utf-8") as f:
                content = f.read()
            expect("digraph" in content) == True
            expect('"extract_1" -> "literal_2"' in content) == True
        finally:
            os.unlink(output_file)


def describe_parse_command():
    def parses_escaped_data(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["parse", "-f", DIC_FORMAT, "START 123 | test [TIMEOUT:30]\\n\\n"])
        expect(result.exit_code) == 0
        data = json.loads(result.output)
        expect(data["success"]) == True
        expect(data["message"]) == {"id": "123", "payload": "test ", "seconds": "30"}

    def parses_hex_data(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["parse", "-f", "PING {x}\n", "--hex", "50494e4720610a"])
        expect(result.exit_code) == 0
        expect(json.loads(result.output)["message"]) == {"x": "a"}

    def fails_on_mismatch(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["parse", "-f", "LOGIN {username}\n", "LOGOUT bob\\n"])
        expect(result.exit_code) == 1
        data = json.loads(result.output)
        expect(data["error"]["state"]) == "literal_0"
        expect(data["error"]["offset"]) == 0


def describe_serialize_command():
    def prints_escaped_bytes(expect, dic_definition):
        runner = CliRunner()
        input_file = write_definition(dic_definition)
        try:
            message = json.dumps({"id": 789, "payload": "test data", "seconds": 60})
            result = runner.invoke(cli, ["serialize", "-i", input_file, message])
            expect(result.exit_code) == 0
            expect(result.output) == "START 789 | test data[TIMEOUT:60]\\n\\n\n"
        finally:
            os.unlink(input_file)

    def lists_validation_issues(expect, user_definition):
        runner = CliRunner()
        input_file = write_definition(user_definition)
        try:
            result = runner.invoke(cli, ["serialize", "-i", input_file, json.dumps({"age": 200})])
            expect(result.exit_code) == 1
            lines = result.output.strip().splitlines()
            expect(len(lines)) == 3
            expect("(max_value)" in result.output) == True
        finally:
            os.unlink(input_file)

    def reports_malformed_json(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["serialize", "-f", "A {x}\n", "{not json"])
        expect(result.exit_code) == 1
        expect(result.output.startswith("Error: MESSAGE is not valid JSON")) == True

    def reports_non_object_json(expect):
        runner = CliRunner()
        result = runner.invoke(cli, ["serialize", "-f", "A {x}\n", "[1, 2]"])
        expect(result.exit_code) == 1
        expect(result.output) == "Error: MESSAGE must be a JSON object\n"


def describe_escapes():
    def unescapes_control_sequences(expect):
        expect(unescape("a\\tb\\r\\n\\x00\\\\")) == b"a\tb\r\n\x00\\"

    def keeps_unicode_text(expect):
        expect(unescape("café")) == "café".encode("utf-8")

    def escapes_non_printable_bytes(expect):
        expect(escape(b"ok\r\n\xff")) == "ok\\r\\n\\xff"
