"""Lexer for DSL expression strings (calculations, guards, paths)."""

from __future__ import annotations

import ply.lex as lex

from mtt_graph.errors import DSLSyntaxError


class ExpressionLexer:
    """Lexer for tokenizing DSL expressions."""

    reserved = {
        "and": "AND",
        "or": "OR",
        "true": "TRUE",
        "false": "FALSE",
        "null": "NULL",
    }

    tokens = [
        "IDENTIFIER",
        "STRING",
        "INTEGER",
        "FLOAT",
        "DOLLAR",
        "DOT",
        "PLUS",
        "MINUS",
        "STAR",
        "SLASH",
        "LPAREN",
        "RPAREN",
        "COMMA",
        "EQ",
        "NE",
        "LE",
        "GE",
        "LT",
        "GT",
    ] + list(reserved.values())

    t_DOLLAR = r"\$"
    t_DOT = r"\."
    t_PLUS = r"\+"
    t_MINUS = r"-"
    t_STAR = r"\*"
    t_SLASH = r"/"
    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_COMMA = r","
    t_EQ = r"=="
    t_NE = r"!="
    t_LE = r"<="
    t_GE = r">="
    t_LT = r"<"
    t_GT = r">"
    t_ignore = " \t\r\n"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r'"([^"\\]|\\.)*"'
        t.value = t.value[1:-1].replace('\\"', '"').replace("\\\\", "\\")
        return t

    # FLOAT before INTEGER so "1.5" is not split at the dot
    def t_FLOAT(self, t: lex.LexToken) -> lex.LexToken:
        r"\d+\.\d+"
        t.value = float(t.value)
        return t

    def t_INTEGER(self, t: lex.LexToken) -> lex.LexToken:
        r"\d+"
        t.value = int(t.value)
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_][a-zA-Z0-9_]*"
        t.type = self.reserved.get(t.value, "IDENTIFIER")
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise DSLSyntaxError(f"DSL: Illegal character '{t.value[0]}' at position {t.lexpos}")

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
