#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import pytest

from psmb_errors import BuildError, ErrorKind
from psmb_scanner import Scanner, TokenKind


def _kinds(src):
    return [t.kind for t in Scanner(src).tokenize()]


def test_assignment_with_escaped_single_quote():
    tokens = Scanner("$x = 'a''b'").tokenize()

    assert [t.kind for t in tokens] == [
        TokenKind.VARIABLE,
        TokenKind.EQ,
        TokenKind.STRING,
        TokenKind.EOF,
    ]
    assert tokens[2].value == "a'b"
    assert tokens[2].text == "'a''b'"


def test_keywords_are_case_insensitive():
    assert _kinds("FUNCTION Get-Foo { }") == [
        TokenKind.FUNCTION,
        TokenKind.WORD,
        TokenKind.LBRACE,
        TokenKind.RBRACE,
        TokenKind.EOF,
    ]
    assert _kinds("filter Select-Odd {}")[0] is TokenKind.FUNCTION
    assert _kinds("Param()")[0] is TokenKind.PARAM
    assert _kinds("Using namespace System")[0] is TokenKind.USING


def test_parameters_and_barewords():
    tokens = Scanner("Get-Item -Path C:\\temp").tokenize()

    assert [t.kind for t in tokens][:3] == [TokenKind.WORD, TokenKind.PARAMETER, TokenKind.WORD]
    assert tokens[0].text == "Get-Item"
    assert tokens[1].text == "-Path"


def test_negative_number_after_assignment():
    tokens = Scanner("$x = -5").tokenize()

    assert tokens[2].kind is TokenKind.NUMBER
    assert tokens[2].text == "-5"


def test_hex_number():
    tokens = Scanner("0x1F").tokenize()

    assert tokens[0].kind is TokenKind.NUMBER
    assert tokens[0].text == "0x1F"


def test_scoped_and_braced_variables():
    tokens = Scanner("$script:Cache ${my var}").tokenize()

    assert tokens[0].kind is TokenKind.VARIABLE
    assert tokens[0].text == "$script:Cache"
    assert tokens[1].kind is TokenKind.VARIABLE
    assert tokens[1].text == "${my var}"


def test_subexpression_inside_double_quoted_string():
    tokens = Scanner('"Name: $($item.Name)" | Out-Host').tokenize()

    assert tokens[0].kind is TokenKind.STRING
    assert tokens[1].kind is TokenKind.PIPE


def test_here_string():
    src = "$x = @'\nline1\n'@\n"
    tokens = Scanner(src).tokenize()

    assert [t.kind for t in tokens] == [
        TokenKind.VARIABLE,
        TokenKind.EQ,
        TokenKind.STRING,
        TokenKind.NEWLINE,
        TokenKind.EOF,
    ]
    assert tokens[2].value == "line1"


def test_comments_and_newlines():
    src = "# line comment\n<# block\ncomment #>\n"
    tokens = Scanner(src).tokenize()

    assert [t.kind for t in tokens] == [
        TokenKind.COMMENT,
        TokenKind.NEWLINE,
        TokenKind.COMMENT,
        TokenKind.NEWLINE,
        TokenKind.EOF,
    ]
    assert tokens[2].line == 2


def test_backtick_line_continuation():
    tokens = Scanner("Get-Item `\n    -Path x").tokenize()

    assert TokenKind.NEWLINE not in [t.kind for t in tokens]
    assert tokens[1].line == 2


def test_token_offsets_cover_source_text():
    src = "function Foo {\n    'x'\n}"
    tokens = Scanner(src).tokenize()

    for tok in tokens:
        assert src[tok.start:tok.end] == tok.text


@pytest.mark.parametrize(
    "src, code",
    [
        ("'abc", "SCN-0010"),
        ('"abc', "SCN-0010"),
        ("@'\nabc\n", "SCN-0020"),
        ("<# abc", "SCN-0030"),
        ("${abc", "SCN-0040"),
    ],
)
def test_unterminated_constructs_are_structural_errors(src, code):
    with pytest.raises(BuildError) as excinfo:
        Scanner(src, filename="bad.ps1").tokenize()

    assert excinfo.value.kind is ErrorKind.STRUCTURAL
    assert f"[{code}]" in excinfo.value.message
    assert excinfo.value.diagnostic.line == 1
    assert excinfo.value.diagnostic.column == 1
