#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import re
from typing import List, Optional, Tuple

from psmb_classifier import StatementClassifier, find_param_block
from psmb_context import BuildContext
from psmb_diagnostics import Diagnostic, make_diagnostic
from psmb_errors import BuildError, structural_error
from psmb_scanner import Scanner, Token, TokenKind, is_requires_comment
from psmb_statements import AliasDeclaration, EntryPoint, Span, Statement

_LEADING_BLANK_LINES_RE = re.compile(r"\A(?:[ \t]*\n)+")


class EntryPointExtractor:
    """
    Turns one entry-point script (a file with a top-level `param` block) into
    an EntryPoint.

    Directives in front of `param` (`using ...` and `#Requires ...`) are cut
    out of the body and returned as parsed statements. An `[Alias(...)]`
    attribute directly in front of `param` declares the entry point's aliases.
    """

    def __init__(
            self,
            source: str,
            name: str,
            tokens: Optional[List[Token]] = None,
            filename: Optional[str] = None,
            context: Optional[BuildContext] = None,
    ) -> None:
        self.source = source
        self.name = name
        self.filename = filename
        self.context = context or BuildContext.default()
        self.tokens = tokens if tokens is not None else Scanner(source, filename=filename or "<input>").tokenize()
        self.warnings: List[Diagnostic] = []

    def extract(self) -> EntryPoint:
        param_index = find_param_block(self.tokens)
        if param_index is None:
            raise structural_error(
                f"[ENT-0011] '{self.name}' has no top-level parameter block", filename=self.filename
            )

        directives, elided = self._collect_directives(param_index)
        aliases = self._harvest_aliases(param_index)

        param_tok = self.tokens[param_index]
        last = self._last_significant()
        return EntryPoint(
            self.name,
            self._body(elided),
            aliases=aliases,
            directives=directives,
            filename=self.filename,
            span=Span(param_tok.line, param_tok.column, last.line, last.column + len(last.text)),
        )

    # --- directives ---

    def _collect_directives(self, param_index: int) -> Tuple[List[Statement], List[Tuple[int, int]]]:
        """Parse the directives in front of `param`; return them with the source ranges to cut."""
        directives: List[Statement] = []
        elided: List[Tuple[int, int]] = []
        classifier = StatementClassifier(self.tokens, self.source, self.filename)

        i = 0
        while i < param_index:
            tok = self.tokens[i]
            if tok.kind is TokenKind.USING:
                classifier.index = i
                directives.append(classifier.parse_using())
                elided.append(self._line_range(tok.start, self.tokens[classifier.index - 1].end))
                i = classifier.index
                continue
            if is_requires_comment(tok):
                directives.append(classifier.parse_requires(tok))
                elided.append(self._line_range(tok.start, tok.end))
            i += 1

        return directives, _merge_ranges(elided)

    def _line_range(self, start: int, end: int) -> Tuple[int, int]:
        """Widen [start, end) to whole lines, including the trailing newline."""
        line_start = self.source.rfind("\n", 0, start) + 1
        line_end = self.source.find("\n", end)
        line_end = len(self.source) if line_end == -1 else line_end + 1
        return line_start, line_end

    def _body(self, elided: List[Tuple[int, int]]) -> str:
        pieces: List[str] = []
        pos = 0
        for start, end in elided:
            pieces.append(self.source[pos:start])
            pos = end
        pieces.append(self.source[pos:])
        body = "".join(pieces)
        return _LEADING_BLANK_LINES_RE.sub("", body).rstrip()

    def _last_significant(self) -> Token:
        for tok in reversed(self.tokens):
            if tok.kind not in (TokenKind.EOF, TokenKind.NEWLINE):
                return tok
        return self.tokens[-1]

    # --- aliases ---

    def _attribute_groups(self, param_index: int) -> List[Tuple[int, int]]:
        """Index ranges of the `[...]` groups directly in front of `param`, in source order."""
        groups: List[Tuple[int, int]] = []
        j = param_index - 1
        while j >= 0:
            tok = self.tokens[j]
            if tok.kind is TokenKind.NEWLINE or (tok.kind is TokenKind.COMMENT and not is_requires_comment(tok)):
                j -= 1
                continue
            if tok.kind is not TokenKind.RBRACKET:
                break
            depth = 0
            k = j
            while k >= 0:
                kind = self.tokens[k].kind
                if kind is TokenKind.RBRACKET:
                    depth += 1
                elif kind is TokenKind.LBRACKET:
                    depth -= 1
                    if depth == 0:
                        break
                k -= 1
            if k < 0:
                break
            groups.append((k, j))
            j = k - 1
        groups.reverse()
        return groups

    def _harvest_aliases(self, param_index: int) -> List[AliasDeclaration]:
        aliases: List[AliasDeclaration] = []
        for first, last in self._attribute_groups(param_index):
            if last - first >= 2 and self.tokens[first + 1].is_word("Alias"):
                aliases.extend(self._parse_alias_group(first + 2, last))

        for alias in aliases:
            target = self.context.external_alias_target(alias.name)
            if target is not None and target.casefold() != self.name.casefold():
                self.warnings.append(make_diagnostic(
                    "warning",
                    f"[ENT-0020] alias '{alias.name}' of '{self.name}' shadows the existing alias "
                    f"'{alias.name}' -> '{target}'",
                    filename=self.filename,
                    line=alias.line,
                    column=alias.column,
                ))
        return aliases

    def _parse_alias_group(self, i: int, close: int) -> List[AliasDeclaration]:
        # Alias ( name [, name]* ) ]   or   Alias ( @( name [, name]* ) ) ]
        opener = self.tokens[i]
        if opener.kind is not TokenKind.LPAREN:
            raise self._alias_error(f"[ENT-0010] expected '(' after 'Alias', got {opener!r} instead", opener)
        i += 1
        nested = self.tokens[i].kind is TokenKind.AT_PAREN
        if nested:
            i += 1

        aliases: List[AliasDeclaration] = []
        i = self._skip_newlines(i, close)
        empty = self.tokens[i].kind is TokenKind.RPAREN
        while not empty:
            i = self._skip_newlines(i, close)
            tok = self.tokens[i]
            if tok.kind is TokenKind.STRING:
                aliases.append(AliasDeclaration(tok.value or "", tok.line, tok.column))
            elif tok.kind is TokenKind.WORD:
                aliases.append(AliasDeclaration(tok.text, tok.line, tok.column))
            elif i >= close:
                raise self._alias_error("[ENT-0011] unterminated alias group", opener)
            else:
                raise self._alias_error(f"[ENT-0010] unexpected {tok!r} in alias list", tok)
            i = self._skip_newlines(i + 1, close)
            tok = self.tokens[i]
            if tok.kind is TokenKind.COMMA:
                i += 1
                continue
            if tok.kind is TokenKind.RPAREN:
                break
            if i >= close:
                raise self._alias_error("[ENT-0011] unterminated alias group", opener)
            raise self._alias_error(f"[ENT-0010] unexpected {tok!r} in alias list", tok)

        if nested:
            i = self._skip_newlines(i + 1, close)
            if self.tokens[i].kind is not TokenKind.RPAREN:
                raise self._alias_error("[ENT-0011] unterminated alias group", opener)
        i = self._skip_newlines(i + 1, close)
        if i != close:
            raise self._alias_error(f"[ENT-0010] unexpected {self.tokens[i]!r} after alias list", self.tokens[i])
        return aliases

    def _skip_newlines(self, i: int, limit: int) -> int:
        while i < limit and self.tokens[i].kind in (TokenKind.NEWLINE, TokenKind.COMMENT):
            i += 1
        return i

    def _alias_error(self, message: str, tok: Token) -> BuildError:
        return structural_error(
            message,
            filename=self.filename,
            line=tok.line,
            column=tok.column,
            text=self.source[tok.start:tok.start + 80],
        )


def _merge_ranges(ranges: List[Tuple[int, int]]) -> List[Tuple[int, int]]:
    merged: List[Tuple[int, int]] = []
    for start, end in sorted(ranges):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(end, merged[-1][1]))
        else:
            merged.append((start, end))
    return merged
