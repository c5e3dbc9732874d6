"""Tests for the comment tag grammar and the bash, python and javascript dialects."""

from __future__ import annotations

import textwrap

import pytest

from fnkit.core.parsing import dialect_for, parse_source
from fnkit.core.parsing.bash import BashDialect
from fnkit.core.parsing.grammar import meta_values, parse_tag, render_param_tag
from fnkit.core.parsing.javascript import JavaScriptDialect
from fnkit.core.parsing.python import PythonDialect, split_docstring
from fnkit.shared.errors import BuildError, MalformedTagError, UnsupportedLanguageError


def _src(text: str) -> str:
    return textwrap.dedent(text).lstrip("\n")


def _params(records):
    return {r.param.name: r.param for r in records if r.param is not None}


# ===================================================================
# Grammar
# ===================================================================


class TestParseTag:
    """Splitting tag arguments into records."""

    def test_required_option_with_notation(self):
        record = parse_tag("option", "--count! <INT> How many items", line=3)
        assert record.param.name == "count"
        assert record.param.required is True
        assert record.param.array is False
        assert record.param.kind == "integer"
        assert record.param.description == "How many items"
        assert record.line == 3

    @pytest.mark.parametrize(
        "args,required,array",
        [
            ("--name", False, False),
            ("--name!", True, False),
            ("--name*", False, True),
            ("--name+", True, True),
        ],
    )
    def test_suffixes(self, args, required, array):
        param = parse_tag("option", args).param
        assert (param.required, param.array) == (required, array)

    def test_choices(self):
        param = parse_tag("option", "--mode[fast|slow] Speed setting").param
        assert param.choices == ("fast", "slow")
        assert param.description == "Speed setting"

    def test_default(self):
        param = parse_tag("option", "--level=3 <NUM> Starting level").param
        assert param.default == "3"
        assert param.kind == "number"

    def test_quoted_description_is_unquoted(self):
        param = parse_tag("option", '--text! "text to echo"').param
        assert param.description == "text to echo"

    def test_short_alias_is_accepted(self):
        param = parse_tag("option", "-o --output-file Where to write").param
        assert param.name == "output_file"

    def test_flag(self):
        param = parse_tag("flag", "--dry-run Only print what would happen").param
        assert param.name == "dry_run"
        assert param.is_flag is True
        assert param.kind == "boolean"

    def test_underscored_option_keeps_its_spelling(self):
        param = parse_tag("option", "--file_name! Target file").param
        assert param.name == "file_name"
        assert param.option == "--file_name"

    def test_hyphenated_option_needs_no_spelling(self):
        assert parse_tag("option", "--file-name").param.option is None
        assert parse_tag("flag", "--dry_run").param.option == "--dry_run"

    def test_unknown_tag_is_ignored(self):
        assert parse_tag("version", "1.0") is None

    def test_option_without_name_is_malformed(self):
        with pytest.raises(MalformedTagError) as exc:
            parse_tag("option", "! no name here", line=7)
        assert exc.value.line == 7
        assert "@option" in str(exc.value)

    def test_flag_with_suffix_is_malformed(self):
        with pytest.raises(MalformedTagError):
            parse_tag("flag", "--force!")

    def test_empty_describe_is_malformed(self):
        with pytest.raises(MalformedTagError):
            parse_tag("describe", '""')

    def test_empty_choice_list_is_malformed(self):
        with pytest.raises(MalformedTagError):
            parse_tag("option", "--mode[] Mode")

    def test_env_tag(self):
        env = parse_tag("env", "API_KEY! Key for the service").env
        assert env.name == "API_KEY"
        assert env.required is True
        assert env.description == "Key for the service"

    def test_env_default(self):
        env = parse_tag("env", "REGION=eu-west-1 Region").env
        assert env.default == "eu-west-1"
        assert env.required is False

    def test_meta_values(self):
        record = parse_tag("meta", "require-tools jq, curl git")
        assert meta_values(record) == ("require-tools", ["jq", "curl", "git"])


class TestRenderParamTag:
    """Rendering parameters back into the tag grammar."""

    def test_optional_boolean_becomes_flag(self):
        assert render_param_tag("verbose", kind="boolean", description="Talk more") == (
            "flag",
            "--verbose Talk more",
        )

    def test_true_default_boolean_stays_option(self):
        tag, args = render_param_tag("color", kind="boolean", default="true")
        assert tag == "option"
        assert args == "--color=true <BOOL>"

    def test_required_integer_array(self):
        assert render_param_tag("ids", kind="integer", array=True, required=True) == ("option", "--ids+ <INT>")

    def test_default_with_spaces_is_quoted(self):
        _, args = render_param_tag("greeting", default="hello there")
        assert args == '--greeting="hello there"'

    def test_rendered_tag_parses_back(self):
        tag, args = render_param_tag("mode", choices=["a", "b"], required=True, description="Pick one")
        param = parse_tag(tag, args).param
        assert param.choices == ("a", "b")
        assert param.required is True
        assert param.description == "Pick one"


# ===================================================================
# Dialect registry
# ===================================================================


class TestDialectFor:
    @pytest.mark.parametrize(
        "filename,language",
        [("a.sh", "bash"), ("a.py", "python"), ("a.js", "javascript"), ("a.mjs", "javascript")],
    )
    def test_extension_lookup(self, filename, language):
        assert dialect_for(filename).language == language

    def test_unknown_extension(self):
        with pytest.raises(UnsupportedLanguageError):
            dialect_for("tool.rb")


# ===================================================================
# Bash
# ===================================================================


class TestBashDialect:
    def test_tool_tags_in_order(self):
        records = parse_source(
            _src(
                """
                #!/usr/bin/env bash
                # @describe Echo input
                # @option --text! text to echo
                # @flag --upper Uppercase the text
                echo "$@"
                """
            ),
            "bash",
        )
        assert [r.tag for r in records] == ["describe", "option", "flag"]
        assert records[1].line == 3

    def test_non_tag_comments_are_ignored(self):
        records = parse_source("# just a comment\n# @describe Hi\n# TODO later\n", "bash")
        assert [r.tag for r in records] == ["describe"]

    def test_environment_tags_are_not_declaration_tags(self):
        text = "# @describe Hi\n# @env TOKEN!\n# @meta require-tools jq\n"
        assert [r.tag for r in BashDialect().parse_tool(text)] == ["describe"]
        assert [r.tag for r in BashDialect().parse_environment(text)] == ["env", "meta"]

    def test_agent_actions(self):
        actions = BashDialect().parse_actions(
            _src(
                """
                helper() { :; }

                # @cmd Save a note
                # @option --text! The note
                add_note() {
                    :
                }

                # @cmd List notes
                function list_notes {
                    :
                }
                """
            )
        )
        assert [a.name for a in actions] == ["add_note", "list_notes"]
        assert actions[0].tags[0].tag == "describe"
        assert actions[0].tags[0].text == "Save a note"
        assert _params(actions[0].tags)["text"].required is True

    def test_dangling_cmd_is_malformed(self):
        with pytest.raises(MalformedTagError) as exc:
            BashDialect().parse_actions("# @cmd Orphan\n")
        assert exc.value.line == 1


# ===================================================================
# Python
# ===================================================================


class TestPythonDialect:
    def test_run_function(self):
        records = parse_source(
            _src(
                '''
                from typing import Literal, Optional


                def run(
                    query: str,
                    limit: Optional[int] = None,
                    tags: list[str] = None,
                    ids: list[int] | None = None,
                    mode: Literal["fast", "slow"] = "fast",
                    verbose: bool = False,
                ):
                    """Search the index.

                    Args:
                        query: What to look for
                        limit: Maximum number of hits
                        tags: Labels to filter on
                        ids: Restrict to these ids
                        mode: Search speed
                        verbose: Explain the ranking
                    """
                '''
            ),
            "python",
        )
        assert records[0].tag == "describe"
        assert records[0].text == "Search the index."
        params = _params(records)
        assert params["query"].required is True
        assert params["query"].description == "What to look for"
        assert params["limit"].kind == "integer"
        assert params["limit"].required is False
        assert params["tags"].array is True
        assert params["ids"].array is True and params["ids"].kind == "integer"
        assert params["mode"].choices == ("fast", "slow")
        assert params["verbose"].is_flag is True

    def test_required_list(self):
        params = _params(parse_source('def run(paths: list[str]):\n    """Touch files."""\n', "python"))
        assert params["paths"].required is True
        assert params["paths"].array is True

    def test_default_is_kept(self):
        params = _params(parse_source('def run(retries: int = 3):\n    """Retry."""\n', "python"))
        assert params["retries"].default == "3"

    def test_missing_run(self):
        with pytest.raises(BuildError, match="run"):
            parse_source('def main():\n    """Nope."""\n', "python")

    def test_syntax_error_reports_line(self):
        with pytest.raises(BuildError) as exc:
            parse_source("def run(:\n    pass\n", "python")
        assert exc.value.line == 1

    def test_agent_actions_skip_private_functions(self):
        actions = PythonDialect().parse_actions(
            _src(
                '''
                def search(term: str):
                    """Search notes."""


                def _helper():
                    pass


                async def clear():
                    """Remove every note."""
                '''
            )
        )
        assert [a.name for a in actions] == ["search", "clear"]

    def test_split_docstring_continuation(self):
        summary, args = split_docstring(
            _src(
                """
                Fetch a page.

                Longer explanation.

                Args:
                    url (str): The address
                        to fetch
                    timeout: Seconds to wait

                Returns:
                    The body.
                """
            )
        )
        assert summary == "Fetch a page. Longer explanation."
        assert args == {"url": "The address to fetch", "timeout": "Seconds to wait"}


# ===================================================================
# JavaScript
# ===================================================================


class TestJavaScriptDialect:
    def test_run_with_properties(self):
        records = parse_source(
            _src(
                """
                /**
                 * Join words into a sentence.
                 * @typedef {Object} Args
                 * @property {string[]} words - Words to join
                 * @property {string} [separator=-] - Separator
                 * @property {'upper'|'lower'} [case] - Letter case
                 * @property {Array<number>} [weights] - Word weights
                 * @param {Args} args
                 */
                exports.run = function run(args) {
                  return args.words.join(" ");
                };
                """
            ),
            "javascript",
        )
        assert records[0].text == "Join words into a sentence."
        params = _params(records)
        assert list(params) == ["words", "separator", "case", "weights"]
        assert params["words"].required is True and params["words"].array is True
        assert params["separator"].default == "-"
        assert params["case"].choices == ("upper", "lower")
        assert params["weights"].kind == "number" and params["weights"].array is True

    def test_param_with_args_prefix(self):
        records = parse_source(
            _src(
                """
                /**
                 * Greet someone.
                 * @param {Object} args
                 * @param {string} args.name - Who to greet
                 * @param {boolean} [args.loud] - Shout
                 */
                function run(args) {}
                """
            ),
            "javascript",
        )
        params = _params(records)
        assert params["name"].required is True
        assert params["loud"].is_flag is True

    def test_missing_run(self):
        with pytest.raises(BuildError):
            parse_source("/** Helper. */\nfunction helper() {}\n", "javascript")

    def test_agent_actions_are_exported_functions(self):
        actions = JavaScriptDialect().parse_actions(
            _src(
                """
                /** Not exported. */
                function local() {}

                /**
                 * Add a note.
                 * @property {string} text - Note text
                 */
                exports.add_note = async function (args) {};

                /** Private helper. */
                export function _secret() {}

                /** List notes. */
                export async function list_notes() {}
                """
            )
        )
        assert [a.name for a in actions] == ["add_note", "list_notes"]
        assert _params(actions[0].tags)["text"].required is True
