"""Parser for DSL expression strings.

Lowers text such as ``$.activity.amount * 0.5`` or
``upper(name) == "PLANT"`` into MTT expression nodes.
"""

from __future__ import annotations

import os

import ply.yacc as yacc

from mtt_graph.dsl.expr_lexer import ExpressionLexer
from mtt_graph.errors import DSLSyntaxError
from mtt_graph.mtt.types import (
    BinaryOp,
    Expr,
    FunctionCall,
    Literal,
    PropertyAccess,
    Variable,
)

_PARSER_DIR = os.path.dirname(os.path.abspath(__file__))

# Bare identifier lowered to a zero-argument call instead of a variable
CURRENT_DATE = "current_date"


class ExpressionParser:
    """LALR parser for DSL expressions."""

    tokens = ExpressionLexer.tokens

    # Operator precedence: loosest to tightest
    precedence = (
        ("left", "OR"),
        ("left", "AND"),
        ("nonassoc", "EQ", "NE", "LT", "GT", "LE", "GE"),
        ("left", "PLUS", "MINUS"),
        ("left", "STAR", "SLASH"),
        ("right", "UMINUS"),
    )

    def __init__(self) -> None:
        self._lexer = ExpressionLexer()
        self._parser: yacc.LRParser | None = None

    def build(self, **kwargs) -> None:  # type: ignore
        self._lexer.build(debug=False, errorlog=yacc.NullLogger())
        kwargs.setdefault("debug", False)
        kwargs.setdefault("write_tables", True)
        kwargs.setdefault("outputdir", _PARSER_DIR)
        kwargs.setdefault("tabmodule", "mtt_graph.dsl._expr_parsetab")
        kwargs.setdefault("errorlog", yacc.NullLogger())
        self._parser = yacc.yacc(module=self, **kwargs)

    def parse(self, text: str) -> Expr:
        if self._parser is None:
            self.build()
        if not text.strip():
            raise DSLSyntaxError("DSL: empty expression")
        return self._parser.parse(text, lexer=self._lexer.lexer)

    # ---- Grammar rules ----

    def p_top_expression(self, p: yacc.YaccProduction) -> None:
        """top : expression"""
        p[0] = p[1]

    def p_expression_binary(self, p: yacc.YaccProduction) -> None:
        """expression : expression OR expression
                      | expression AND expression
                      | expression EQ expression
                      | expression NE expression
                      | expression LT expression
                      | expression GT expression
                      | expression LE expression
                      | expression GE expression
                      | expression PLUS expression
                      | expression MINUS expression
                      | expression STAR expression
                      | expression SLASH expression"""
        p[0] = BinaryOp(op=p[2], left=p[1], right=p[3])

    def p_expression_negate(self, p: yacc.YaccProduction) -> None:
        """expression : MINUS expression %prec UMINUS"""
        operand = p[2]
        if isinstance(operand, Literal) and isinstance(operand.value, (int, float)):
            p[0] = Literal(value=-operand.value)
        else:
            p[0] = BinaryOp(op="-", left=Literal(value=0), right=operand)

    def p_expression_postfix(self, p: yacc.YaccProduction) -> None:
        """expression : postfix"""
        p[0] = p[1]

    # ---- Property access: atom.key.key ----

    def p_postfix_atom(self, p: yacc.YaccProduction) -> None:
        """postfix : atom"""
        p[0] = p[1]

    def p_postfix_property(self, p: yacc.YaccProduction) -> None:
        """postfix : postfix DOT IDENTIFIER"""
        p[0] = PropertyAccess(obj=p[1], key=p[3])

    # ---- Atoms ----

    def p_atom_literal(self, p: yacc.YaccProduction) -> None:
        """atom : INTEGER
                | FLOAT
                | STRING"""
        p[0] = Literal(value=p[1])

    def p_atom_true(self, p: yacc.YaccProduction) -> None:
        """atom : TRUE"""
        p[0] = Literal(value=True)

    def p_atom_false(self, p: yacc.YaccProduction) -> None:
        """atom : FALSE"""
        p[0] = Literal(value=False)

    def p_atom_null(self, p: yacc.YaccProduction) -> None:
        """atom : NULL"""
        p[0] = Literal(value=None)

    def p_atom_identifier(self, p: yacc.YaccProduction) -> None:
        """atom : IDENTIFIER"""
        if p[1] == CURRENT_DATE:
            p[0] = FunctionCall(name=CURRENT_DATE, args=[])
        else:
            p[0] = Variable(name=p[1])

    def p_atom_path_root(self, p: yacc.YaccProduction) -> None:
        """atom : DOLLAR DOT IDENTIFIER"""
        p[0] = Variable(name=p[3])

    def p_atom_call_empty(self, p: yacc.YaccProduction) -> None:
        """atom : IDENTIFIER LPAREN RPAREN"""
        p[0] = FunctionCall(name=p[1], args=[])

    def p_atom_call(self, p: yacc.YaccProduction) -> None:
        """atom : IDENTIFIER LPAREN arg_list RPAREN"""
        p[0] = FunctionCall(name=p[1], args=p[3])

    def p_atom_paren(self, p: yacc.YaccProduction) -> None:
        """atom : LPAREN expression RPAREN"""
        p[0] = p[2]

    def p_arg_list_single(self, p: yacc.YaccProduction) -> None:
        """arg_list : expression"""
        p[0] = [p[1]]

    def p_arg_list_multi(self, p: yacc.YaccProduction) -> None:
        """arg_list : arg_list COMMA expression"""
        p[0] = p[1] + [p[3]]

    # ---- Error handler ----

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise DSLSyntaxError(f"DSL: Syntax error at '{p.value}' (position {p.lexpos})")
        raise DSLSyntaxError("DSL: Unexpected end of input")
