#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from typing import List, Optional, Tuple

from psmb_errors import BuildError, structural_error
from psmb_scanner import CLOSERS, OPENERS, Scanner, Token, TokenKind, is_requires_comment
from psmb_statements import (
    ClassStatement, EnumMember, EnumStatement, FunctionStatement, ImportKind, ModuleSpec,
    RequiresStatement, SourceStatement, Span, UsingStatement, VariableStatement,
)


# Keywords are still acceptable as member and type names.
NAME_KINDS = {
    TokenKind.WORD, TokenKind.FUNCTION, TokenKind.CLASS, TokenKind.ENUM,
    TokenKind.PARAM, TokenKind.USING,
}

# A line ending with one of these continues the statement on the next line.
_CONTINUATION_KINDS = {TokenKind.PIPE, TokenKind.COMMA, TokenKind.EQ, TokenKind.OPERATOR}

_MODULE_KEYS = {
    "modulename": "name",
    "guid": "guid",
    "moduleversion": "min_version",
    "maximumversion": "max_version",
    "requiredversion": "exact_version",
}


_CLOSER_OF = {
    TokenKind.LBRACE: TokenKind.RBRACE,
    TokenKind.AT_BRACE: TokenKind.RBRACE,
    TokenKind.LPAREN: TokenKind.RPAREN,
    TokenKind.AT_PAREN: TokenKind.RPAREN,
    TokenKind.DOLLAR_PAREN: TokenKind.RPAREN,
    TokenKind.LBRACKET: TokenKind.RBRACKET,
}


def find_param_block(tokens: List[Token]) -> Optional[int]:
    """Return the index of the first `param` keyword at nesting depth zero."""
    open_groups: List[TokenKind] = []
    for i, tok in enumerate(tokens):
        if tok.kind in OPENERS:
            open_groups.append(tok.kind)
        elif tok.kind in CLOSERS:
            # A closer also ends any unclosed groups nested inside its own group
            while open_groups and _CLOSER_OF[open_groups.pop()] is not tok.kind:
                pass
        elif tok.kind is TokenKind.PARAM and not open_groups:
            return i
    return None


class StatementClassifier:
    """
    Splits one non-entry-point script file into top-level statement records.

    Recognized statements:
      - #Requires comments
      - using namespace/assembly/module directives
      - [attr]* enum / class definitions
      - function / filter definitions
      - [type]?$variable = expression assignments

    Anything else at the top level is a structural error.
    """

    def __init__(self, tokens: List[Token], source: str, filename: Optional[str] = None) -> None:
        self.tokens = tokens
        self.source = source
        self.filename = filename
        self.index = 0

    @classmethod
    def from_source(cls, source: str, filename: Optional[str] = None) -> "StatementClassifier":
        tokens = Scanner(source, filename=filename or "<input>").tokenize()
        return cls(tokens, source, filename)

    # --- token utilities ---

    def _peek(self) -> Token:
        return self.tokens[self.index]

    def _last(self) -> Token:
        return self.tokens[self.index - 1 if self.index > 0 else 0]

    def _at_end(self) -> bool:
        return self._peek().kind is TokenKind.EOF

    def _advance(self) -> Token:
        tok = self._peek()
        if not self._at_end():
            self.index += 1
        return tok

    def _check(self, kind: TokenKind) -> bool:
        return self._peek().kind is kind

    def _match(self, *kinds: TokenKind) -> bool:
        if self._peek().kind in kinds:
            self._advance()
            return True
        return False

    def _error(self, message: str, tok: Token) -> BuildError:
        return structural_error(
            message,
            filename=self.filename,
            line=tok.line,
            column=tok.column,
            text=self.source[tok.start:tok.start + 80] if tok.kind is not TokenKind.EOF else None,
        )

    def _expect(self, kind: TokenKind, msg: str) -> Token:
        if not self._check(kind):
            raise self._error(f"{msg}, got {self._peek()} instead", self._peek())
        return self._advance()

    def _expect_name(self, msg: str) -> Token:
        if self._peek().kind not in NAME_KINDS:
            raise self._error(f"{msg}, got {self._peek()} instead", self._peek())
        return self._advance()

    def _skip_newlines(self) -> None:
        while self._peek().kind is TokenKind.NEWLINE or (
                self._check(TokenKind.COMMENT) and not is_requires_comment(self._peek())):
            self._advance()

    def _skip_group(self) -> Token:
        """Consume a bracketed group starting at the current opener; return its closing token."""
        opener = self._advance()
        depth = 1
        while depth > 0:
            tok = self._advance()
            if tok.kind is TokenKind.EOF:
                raise self._error(f"[CLS-0070] unterminated '{opener.text}' group", opener)
            if tok.kind in OPENERS:
                depth += 1
            elif tok.kind in CLOSERS:
                depth -= 1
        return self._last()

    def _span(self, first: Token, last: Token) -> Span:
        end_line = last.line + last.text.count("\n")
        if "\n" in last.text:
            end_column = len(last.text) - last.text.rfind("\n")
        else:
            end_column = last.column + len(last.text)
        return Span(first.line, first.column, end_line, end_column)

    def _slice(self, first: Token, last: Token) -> str:
        return self.source[first.start:last.end]

    # --- entry point ---

    def is_entry_point(self) -> bool:
        return find_param_block(self.tokens) is not None

    def classify(self) -> List[SourceStatement]:
        statements: List[SourceStatement] = []
        while not self._at_end():
            tok = self._peek()
            if tok.kind in (TokenKind.NEWLINE, TokenKind.SEMI):
                self._advance()
                continue
            if tok.kind is TokenKind.COMMENT:
                self._advance()
                if is_requires_comment(tok):
                    statements.append(self.parse_requires(tok))
                continue
            if tok.kind is TokenKind.USING:
                statements.append(self.parse_using())
                continue
            statements.append(self._parse_declaration())
        return statements

    # --- directives ---

    def parse_using(self) -> UsingStatement:
        # using <namespace|assembly|module> <name>
        using_tok = self._expect(TokenKind.USING, "[CLS-0030] expected 'using'")
        kind_tok = self._peek()
        if kind_tok.kind in (TokenKind.NEWLINE, TokenKind.SEMI, TokenKind.EOF):
            raise self._error("[CLS-0030] expected import kind after 'using'", kind_tok)
        self._advance()
        try:
            kind = ImportKind(kind_tok.text.casefold())
        except ValueError:
            kind = ImportKind.UNKNOWN

        parts: List[Token] = []
        while self._peek().kind not in (TokenKind.NEWLINE, TokenKind.SEMI, TokenKind.EOF, TokenKind.COMMENT):
            parts.append(self._advance())
        if not parts:
            raise self._error(f"[CLS-0030] expected name after 'using {kind_tok.text}'", self._peek())

        if len(parts) == 1 and parts[0].kind is TokenKind.STRING:
            name = parts[0].value or ""
        else:
            name = self._slice(parts[0], parts[-1]).strip()
        return UsingStatement(
            kind,
            name,
            filename=self.filename,
            span=self._span(using_tok, parts[-1]),
            text=self._slice(using_tok, parts[-1]),
        )

    def parse_requires(self, tok: Token) -> RequiresStatement:
        """Parse the arguments of a `#Requires` comment token."""
        body = tok.text[len("#requires"):]
        args = Scanner(body, filename=self.filename or "<input>").tokenize()

        version: Optional[str] = None
        editions: List[str] = []
        modules: List[ModuleSpec] = []
        assemblies: List[str] = []
        run_as_admin = False

        def fail(message: str) -> BuildError:
            return structural_error(
                f"[CLS-0020] {message}", filename=self.filename, line=tok.line, column=tok.column, text=tok.text,
            )

        i = 0
        while args[i].kind is not TokenKind.EOF:
            arg = args[i]
            if arg.kind is not TokenKind.PARAMETER:
                raise fail(f"unexpected {arg!r} in #Requires directive")
            option = arg.text[1:].casefold()
            i += 1
            if option == "version":
                version, i = self._read_adjacent(args, i)
                if not version:
                    raise fail("expected a version after -Version")
            elif option in ("psedition", "pseditions"):
                values, i = self._read_list(args, i)
                if not values:
                    raise fail("expected an edition after -PSEdition")
                editions.extend(values)
            elif option == "modules":
                parsed, i = self._read_module_list(args, i, fail)
                modules.extend(parsed)
            elif option == "assembly":
                values, i = self._read_list(args, i)
                assemblies.extend(values)
            elif option == "runasadministrator":
                run_as_admin = True
            else:
                raise fail(f"unsupported #Requires parameter '{arg.text}'")

        return RequiresStatement(
            version=version,
            editions=tuple(editions),
            modules=tuple(modules),
            run_as_admin=run_as_admin,
            assemblies=tuple(assemblies),
            filename=self.filename,
            span=Span(tok.line, tok.column, tok.line, tok.column + len(tok.text)),
            text=tok.text,
        )

    @staticmethod
    def _read_adjacent(args: List[Token], i: int) -> Tuple[Optional[str], int]:
        """Read one argument value made of adjacent tokens (e.g. `7.2.1` or `'Core'`)."""
        tok = args[i]
        if tok.kind is TokenKind.STRING:
            return tok.value, i + 1
        if tok.kind not in (TokenKind.NUMBER, TokenKind.WORD, TokenKind.DOT):
            return None, i
        parts = [tok.text]
        end = tok.end
        i += 1
        while args[i].kind in (TokenKind.NUMBER, TokenKind.WORD, TokenKind.DOT) and args[i].start == end:
            parts.append(args[i].text)
            end = args[i].end
            i += 1
        return "".join(parts), i

    def _read_list(self, args: List[Token], i: int) -> Tuple[List[str], int]:
        values: List[str] = []
        while True:
            value, i = self._read_adjacent(args, i)
            if value is None:
                break
            values.append(value)
            if args[i].kind is not TokenKind.COMMA:
                break
            i += 1
        return values, i

    def _read_module_list(self, args: List[Token], i: int, fail) -> Tuple[List[ModuleSpec], int]:
        modules: List[ModuleSpec] = []
        while True:
            if args[i].kind is TokenKind.AT_BRACE:
                spec, i = self._read_module_table(args, i + 1, fail)
                modules.append(spec)
            else:
                name, i = self._read_adjacent(args, i)
                if name is None:
                    raise fail(f"expected a module name or hashtable, got {args[i]!r}")
                modules.append(ModuleSpec(name))
            if args[i].kind is not TokenKind.COMMA:
                return modules, i
            i += 1

    def _read_module_table(self, args: List[Token], i: int, fail) -> Tuple[ModuleSpec, int]:
        fields = {}
        while True:
            while args[i].kind in (TokenKind.SEMI, TokenKind.NEWLINE):
                i += 1
            if args[i].kind is TokenKind.RBRACE:
                i += 1
                break
            key, i = self._read_adjacent(args, i)
            if key is None:
                raise fail(f"unterminated module hashtable at {args[i]!r}")
            attr = _MODULE_KEYS.get(key.casefold())
            if attr is None:
                raise fail(f"unknown module specification key '{key}'")
            if args[i].kind is not TokenKind.EQ:
                raise fail(f"expected '=' after '{key}'")
            value, i = self._read_adjacent(args, i + 1)
            if value is None:
                raise fail(f"expected a value for '{key}'")
            fields[attr] = value
        if "name" not in fields:
            raise fail("module specification is missing 'ModuleName'")
        return ModuleSpec(**fields), i

    # --- declarations ---

    def _parse_declaration(self) -> SourceStatement:
        first = self._peek()
        attributes: List[str] = []
        while self._check(TokenKind.LBRACKET):
            open_tok = self._peek()
            close_tok = self._skip_group()
            attributes.append(self._slice(open_tok, close_tok))
            if not self._check(TokenKind.VARIABLE):
                self._skip_newlines()

        tok = self._peek()
        if tok.kind is TokenKind.ENUM:
            return self._parse_enum(first, attributes)
        if tok.kind is TokenKind.CLASS:
            return self._parse_class(first)
        if tok.kind is TokenKind.VARIABLE:
            return self._parse_assignment(first, attributes)
        if tok.kind is TokenKind.FUNCTION and not attributes:
            return self._parse_function(first)
        raise self._error("[CLS-0010] unsupported top-level statement", first)

    def _parse_enum(self, first: Token, attributes: List[str]) -> EnumStatement:
        # enum <Name> [: <type>] { <Member> [= <value>] ... }
        self._expect(TokenKind.ENUM, "[CLS-0040] expected 'enum'")
        name = self._expect_name("[CLS-0040] expected enum name").text
        underlying = None
        if self._match(TokenKind.COLON):
            underlying = self._expect_name("[CLS-0040] expected underlying type after ':'").text
        self._skip_newlines()
        self._expect(TokenKind.LBRACE, f"[CLS-0040] expected '{{' after enum '{name}'")

        members: List[EnumMember] = []
        while True:
            while self._peek().kind in (TokenKind.NEWLINE, TokenKind.SEMI, TokenKind.COMMENT):
                self._advance()
            if self._match(TokenKind.RBRACE):
                break
            if self._check(TokenKind.LBRACKET):
                self._skip_group()
                continue
            member = self._expect_name(f"[CLS-0040] expected member name in enum '{name}'")
            value = None
            if self._match(TokenKind.EQ):
                value_tokens: List[Token] = []
                while self._peek().kind not in (
                        TokenKind.NEWLINE, TokenKind.SEMI, TokenKind.RBRACE, TokenKind.COMMENT, TokenKind.EOF):
                    value_tokens.append(self._advance())
                if not value_tokens:
                    raise self._error(f"[CLS-0041] expected value for enum member '{member.text}'", self._peek())
                value = self._slice(value_tokens[0], value_tokens[-1])
            members.append(EnumMember(member.text, value))

        last = self._last()
        return EnumStatement(
            name,
            tuple(members),
            attributes=tuple(attributes),
            underlying_type=underlying,
            filename=self.filename,
            span=self._span(first, last),
            text=self._slice(first, last),
        )

    def _parse_class(self, first: Token) -> ClassStatement:
        # class <Name> [: <Base> (, <Base>)*] { ... }
        self._expect(TokenKind.CLASS, "[CLS-0050] expected 'class'")
        name = self._expect_name("[CLS-0050] expected class name").text
        bases: List[str] = []
        if self._match(TokenKind.COLON):
            current: List[str] = []
            depth = 0
            while not (depth == 0 and self._peek().kind in (TokenKind.LBRACE, TokenKind.NEWLINE, TokenKind.EOF)):
                tok = self._advance()
                if tok.kind in OPENERS:
                    depth += 1
                elif tok.kind in CLOSERS:
                    depth -= 1
                if tok.kind is TokenKind.COMMA and depth == 0:
                    bases.append("".join(current))
                    current = []
                else:
                    current.append(tok.text)
            if current:
                bases.append("".join(current))
            if not bases or any(not b for b in bases):
                raise self._error(f"[CLS-0050] expected base type list for class '{name}'", self._peek())
        self._skip_newlines()
        if not self._check(TokenKind.LBRACE):
            raise self._error(f"[CLS-0050] expected '{{' after class '{name}', got {self._peek()} instead",
                              self._peek())
        last = self._skip_group()
        return ClassStatement(
            name,
            tuple(bases),
            filename=self.filename,
            span=self._span(first, last),
            text=self._slice(first, last),
        )

    def _parse_function(self, first: Token) -> FunctionStatement:
        # function [scope:]<Name> [( params )] { ... }
        self._expect(TokenKind.FUNCTION, "[CLS-0060] expected 'function'")
        name = self._expect_name("[CLS-0060] expected function name").text
        if self._match(TokenKind.COLON):
            name = self._expect_name("[CLS-0060] expected function name after scope").text
        if self._check(TokenKind.LPAREN):
            self._skip_group()
        self._skip_newlines()
        if not self._check(TokenKind.LBRACE):
            raise self._error(f"[CLS-0060] expected '{{' after function '{name}', got {self._peek()} instead",
                              self._peek())
        last = self._skip_group()
        return FunctionStatement(
            name,
            filename=self.filename,
            span=self._span(first, last),
            text=self._slice(first, last),
        )

    def _parse_assignment(self, first: Token, attributes: List[str]) -> VariableStatement:
        # [type]$name = <expression>
        target = self._expect(TokenKind.VARIABLE, "[CLS-0021] expected variable")
        if not self._match(TokenKind.EQ):
            raise self._error(f"[CLS-0021] expected '=' after variable '{target.text}'", self._peek())
        self._skip_newlines()

        expr_tokens: List[Token] = []
        while True:
            tok = self._peek()
            if tok.kind is TokenKind.EOF:
                break
            if tok.kind in (TokenKind.NEWLINE, TokenKind.SEMI):
                significant = [t for t in expr_tokens if t.kind is not TokenKind.COMMENT]
                if significant and significant[-1].kind in _CONTINUATION_KINDS and tok.kind is TokenKind.NEWLINE:
                    expr_tokens.append(self._advance())
                    continue
                break
            if tok.kind in OPENERS:
                open_tok = tok
                close_tok = self._skip_group()
                expr_tokens.append(open_tok)
                expr_tokens.append(close_tok)
                continue
            expr_tokens.append(self._advance())

        significant = [t for t in expr_tokens if t.kind not in (TokenKind.COMMENT, TokenKind.NEWLINE)]
        if not significant:
            raise self._error(f"[CLS-0021] expected expression after '{target.text} ='", self._peek())
        last = significant[-1]

        return VariableStatement(
            _variable_name(target.text),
            target.text,
            self._slice(significant[0], last),
            type_constraint="".join(attributes) or None,
            filename=self.filename,
            span=self._span(first, last),
            text=self._slice(first, last),
        )


def _variable_name(target: str) -> str:
    """`$script:Cache` -> `Cache`, `${my var}` -> `my var`."""
    name = target[1:]
    if name.startswith("{") and name.endswith("}"):
        name = name[1:-1]
    if ":" in name:
        name = name.rsplit(":", 1)[1]
    return name
