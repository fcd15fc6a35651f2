"""Compile engine: Karel source text to a validated Program.

Compilation runs in two passes. The recursive-descent parser builds an
unresolved tree in which every call is just a name with an argument
count; the resolver then binds each name to a primitive action, a
predicate or a user procedure. Procedures can therefore be called before
they are defined, and a user procedure with the name of a primitive
action (the classic ``turnRight``) takes precedence over the primitive.

Everything is validated here so the execution engine never has to look
up an identifier at run time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from karel.core.exceptions import CompileError, CompileErrorKind
from karel.core.lexer import Token, tokenize
from karel.core.program import (
    ACTIONS_BY_NAME,
    PREDICATES_BY_NAME,
    ActionStmt,
    AndCond,
    CallStmt,
    Condition,
    DoWhileStmt,
    IfStmt,
    NotCond,
    OrCond,
    PredicateCond,
    Procedure,
    Program,
    RepeatStmt,
    Statement,
    WhileStmt,
)
from karel.core.results import CompileResult

logger = logging.getLogger(__name__)

ENTRY_NAMES = ("main", "run")
IMPLICIT_ENTRY = "main"
DEFAULT_MAX_NESTING_DEPTH = 100


# Unresolved tree -------------------------------------------------------------


@dataclass(frozen=True)
class _Call:
    name: str
    argc: int
    line: int
    col: int
    depth: int = 0


@dataclass(frozen=True)
class _Not:
    operand: "_Cond"
    line: int
    depth: int = 1


@dataclass(frozen=True)
class _Binary:
    op: str
    left: "_Cond"
    right: "_Cond"
    line: int
    depth: int = 1


_Cond = Union[_Call, _Not, _Binary]


@dataclass(frozen=True)
class _If:
    condition: _Cond
    then_body: tuple
    else_body: tuple
    line: int


@dataclass(frozen=True)
class _While:
    condition: _Cond
    body: tuple
    line: int


@dataclass(frozen=True)
class _DoWhile:
    body: tuple
    condition: _Cond
    line: int


@dataclass(frozen=True)
class _Repeat:
    count: int
    body: tuple
    line: int


@dataclass(frozen=True)
class _Definition:
    name: str
    body: tuple
    line: int
    col: int


# Parser ----------------------------------------------------------------------


class Parser:
    """Recursive-descent parser.

    Blocks, ``else if`` chains and condition operators may nest at most
    ``max_nesting_depth`` levels, which keeps this parser, the resolver
    and condition evaluation well inside the interpreter's recursion limit.
    """

    def __init__(
        self, tokens: Sequence[Token], max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH
    ):
        if max_nesting_depth <= 0:
            raise ValueError("max_nesting_depth must be positive")
        self.tokens = list(tokens)
        self.i = 0
        self.definitions: list[_Definition] = []
        self.loose: list = []
        self.max_nesting_depth = max_nesting_depth
        self.depth = 0

    def cur(self) -> Token:
        return self.tokens[self.i]

    def match(self, kind: str, value: Optional[str] = None) -> Optional[Token]:
        t = self.cur()
        if t.kind != kind:
            return None
        if value is not None and t.value != value:
            return None
        self.i += 1
        return t

    def match_kw(self, value: str) -> Optional[Token]:
        return self.match("KW", value)

    def expect(self, kind: str, value: Optional[str] = None) -> Token:
        t = self.cur()
        if t.kind != kind or (value is not None and t.value != value):
            want = repr(value) if value else kind.lower()
            got = "end of program" if t.kind == "EOF" else repr(t.value)
            raise CompileError(
                CompileErrorKind.SYNTAX_ERROR, f"expected {want}, got {got}", t.line, t.col
            )
        self.i += 1
        return t

    def enter(self, t: Token) -> None:
        self.depth += 1
        self.check_depth(self.depth, t)

    def leave(self) -> None:
        self.depth -= 1

    def check_depth(self, depth: int, t: Token) -> None:
        if depth > self.max_nesting_depth:
            raise CompileError(
                CompileErrorKind.SYNTAX_ERROR,
                f"nesting too deep (more than {self.max_nesting_depth} levels)",
                t.line,
                t.col,
            )

    def parse(self) -> None:
        while self.cur().kind != "EOF":
            if self.cur().kind == "KW" and self.cur().value in ("function", "void"):
                self.i += 1
                self.definitions.append(self.parse_definition())
            else:
                self.loose.append(self.parse_statement())

    def parse_definition(self) -> _Definition:
        name_tok = self.expect("ID")
        self.expect("OP", "(")
        params = self.parse_arguments()
        if params:
            raise CompileError(
                CompileErrorKind.ARITY_MISMATCH,
                f"procedure '{name_tok.value}' cannot take parameters",
                name_tok.line,
                name_tok.col,
            )
        body = self.parse_block()
        return _Definition(name_tok.value, body, name_tok.line, name_tok.col)

    def parse_arguments(self) -> list[Token]:
        """Parse the remainder of an argument list after '('."""
        args: list[Token] = []
        if self.match("OP", ")"):
            return args
        while True:
            t = self.cur()
            if t.kind not in ("NUMBER", "ID"):
                raise CompileError(
                    CompileErrorKind.SYNTAX_ERROR,
                    f"unexpected {t.value or 'end of program'!r} in argument list",
                    t.line,
                    t.col,
                )
            self.i += 1
            args.append(t)
            if self.match("OP", ")"):
                return args
            self.expect("OP", ",")

    def parse_block(self) -> tuple:
        self.enter(self.expect("OP", "{"))
        body = []
        while not self.match("OP", "}"):
            if self.cur().kind == "EOF":
                t = self.cur()
                raise CompileError(
                    CompileErrorKind.SYNTAX_ERROR, "missing '}'", t.line, t.col
                )
            stmt = self.parse_statement()
            if stmt is not None:
                body.append(stmt)
        self.leave()
        return tuple(body)

    def parse_statement(self):
        t = self.cur()
        if self.match("OP", ";"):
            return None
        if self.match_kw("if"):
            return self.parse_if(t)
        if self.match_kw("while"):
            condition = self.parse_paren_condition()
            return _While(condition, self.parse_block(), t.line)
        if self.match_kw("do"):
            body = self.parse_block()
            self.expect("KW", "while")
            condition = self.parse_paren_condition()
            self.expect("OP", ";")
            return _DoWhile(body, condition, t.line)
        if self.match_kw("repeat"):
            return self.parse_repeat(t)
        if t.kind == "KW" and t.value in ("function", "void"):
            raise CompileError(
                CompileErrorKind.SYNTAX_ERROR,
                "procedures can only be defined at the top level",
                t.line,
                t.col,
            )
        if t.kind == "ID":
            call = self.parse_call()
            self.expect("OP", ";")
            return call
        got = "end of program" if t.kind == "EOF" else repr(t.value)
        raise CompileError(
            CompileErrorKind.SYNTAX_ERROR, f"expected a statement, got {got}", t.line, t.col
        )

    def parse_if(self, t: Token) -> _If:
        condition = self.parse_paren_condition()
        then_body = self.parse_block()
        else_body: tuple = ()
        if self.match_kw("else"):
            else_tok = self.cur()
            if self.match_kw("if"):
                self.enter(else_tok)
                else_body = (self.parse_if(else_tok),)
                self.leave()
            else:
                else_body = self.parse_block()
        return _If(condition, then_body, else_body, t.line)

    def parse_repeat(self, t: Token) -> _Repeat:
        self.expect("OP", "(")
        args = self.parse_arguments()
        if len(args) != 1:
            raise CompileError(
                CompileErrorKind.ARITY_MISMATCH,
                f"repeat takes exactly 1 argument ({len(args)} given)",
                t.line,
                t.col,
            )
        count_tok = args[0]
        if count_tok.kind != "NUMBER":
            raise CompileError(
                CompileErrorKind.SYNTAX_ERROR,
                "repeat count must be a whole number",
                count_tok.line,
                count_tok.col,
            )
        return _Repeat(int(count_tok.value), self.parse_block(), t.line)

    def parse_call(self) -> _Call:
        name_tok = self.expect("ID")
        self.expect("OP", "(")
        args = self.parse_arguments()
        return _Call(name_tok.value, len(args), name_tok.line, name_tok.col)

    def parse_paren_condition(self) -> _Cond:
        self.expect("OP", "(")
        condition = self.parse_or()
        self.expect("OP", ")")
        return condition

    def parse_or(self) -> _Cond:
        left = self.parse_and()
        while True:
            op = self.match("OP", "||")
            if op is None:
                return left
            left = self.binary("||", left, self.parse_and(), op)

    def parse_and(self) -> _Cond:
        left = self.parse_unary()
        while True:
            op = self.match("OP", "&&")
            if op is None:
                return left
            left = self.binary("&&", left, self.parse_unary(), op)

    def binary(self, op: str, left: _Cond, right: _Cond, t: Token) -> _Binary:
        # Operator chains are parsed in a loop but resolved recursively.
        depth = 1 + max(left.depth, right.depth)
        self.check_depth(depth, t)
        return _Binary(op, left, right, t.line, depth)

    def parse_unary(self) -> _Cond:
        t = self.cur()
        if self.match("OP", "!"):
            self.enter(t)
            operand = self.parse_unary()
            self.leave()
            depth = operand.depth + 1
            self.check_depth(depth, t)
            return _Not(operand, t.line, depth)
        if self.match("OP", "("):
            self.enter(t)
            inner = self.parse_or()
            self.expect("OP", ")")
            self.leave()
            return inner
        if t.kind == "ID":
            return self.parse_call()
        got = "end of program" if t.kind == "EOF" else repr(t.value)
        raise CompileError(
            CompileErrorKind.SYNTAX_ERROR, f"expected a condition, got {got}", t.line, t.col
        )


# Resolver --------------------------------------------------------------------


class Resolver:
    """Bind names in the unresolved tree and build the final Program."""

    def __init__(self, definitions: list[_Definition], loose: list):
        self.definitions = definitions
        self.loose = [stmt for stmt in loose if stmt is not None]
        self.names: set[str] = set()

    def resolve(self) -> Program:
        for definition in self.definitions:
            if definition.name in PREDICATES_BY_NAME:
                raise CompileError(
                    CompileErrorKind.SYNTAX_ERROR,
                    f"'{definition.name}' is a built-in condition and cannot be redefined",
                    definition.line,
                    definition.col,
                )
            if definition.name in self.names:
                raise CompileError(
                    CompileErrorKind.SYNTAX_ERROR,
                    f"procedure '{definition.name}' is defined more than once",
                    definition.line,
                    definition.col,
                )
            self.names.add(definition.name)

        entry = self._choose_entry()

        procedures: dict[str, Procedure] = {}
        for definition in self.definitions:
            procedures[definition.name] = Procedure(
                definition.name, self._body(definition.body), definition.line
            )
        if self.loose:
            first_line = getattr(self.loose[0], "line", 1)
            procedures[IMPLICIT_ENTRY] = Procedure(
                IMPLICIT_ENTRY, self._body(tuple(self.loose)), first_line
            )
        return Program(procedures, entry)

    def _choose_entry(self) -> str:
        if self.loose:
            if IMPLICIT_ENTRY in self.names:
                first = self.loose[0]
                raise CompileError(
                    CompileErrorKind.SYNTAX_ERROR,
                    "statements outside a procedure cannot be combined with main()",
                    getattr(first, "line", None),
                    getattr(first, "col", None),
                )
            return IMPLICIT_ENTRY
        for name in ENTRY_NAMES:
            if name in self.names:
                return name
        raise CompileError(
            CompileErrorKind.MISSING_ENTRY_PROCEDURE,
            "define a main() procedure or write statements at the top level",
        )

    def _body(self, raw: tuple) -> tuple[Statement, ...]:
        return tuple(self._statement(stmt) for stmt in raw)

    def _statement(self, raw) -> Statement:
        if isinstance(raw, _Call):
            return self._call(raw)
        if isinstance(raw, _If):
            return IfStmt(
                self._condition(raw.condition),
                self._body(raw.then_body),
                self._body(raw.else_body),
                raw.line,
            )
        if isinstance(raw, _While):
            return WhileStmt(self._condition(raw.condition), self._body(raw.body), raw.line)
        if isinstance(raw, _DoWhile):
            return DoWhileStmt(self._body(raw.body), self._condition(raw.condition), raw.line)
        if isinstance(raw, _Repeat):
            return RepeatStmt(raw.count, self._body(raw.body), raw.line)
        raise TypeError(f"Unexpected node {raw!r}")

    def _call(self, call: _Call) -> Statement:
        if call.name in self.names:
            self._check_no_args(call)
            return CallStmt(call.name, call.line)
        if call.name in ACTIONS_BY_NAME:
            self._check_no_args(call)
            return ActionStmt(ACTIONS_BY_NAME[call.name], call.line)
        if call.name in PREDICATES_BY_NAME:
            raise CompileError(
                CompileErrorKind.SYNTAX_ERROR,
                f"'{call.name}' is a condition; use it inside if/while",
                call.line,
                call.col,
            )
        raise CompileError(
            CompileErrorKind.UNKNOWN_IDENTIFIER,
            f"unknown procedure '{call.name}'",
            call.line,
            call.col,
        )

    def _condition(self, raw: _Cond) -> Condition:
        if isinstance(raw, _Not):
            return NotCond(self._condition(raw.operand), raw.line)
        if isinstance(raw, _Binary):
            left = self._condition(raw.left)
            right = self._condition(raw.right)
            if raw.op == "&&":
                return AndCond(left, right, raw.line)
            return OrCond(left, right, raw.line)

        if raw.name in PREDICATES_BY_NAME:
            self._check_no_args(raw)
            return PredicateCond(PREDICATES_BY_NAME[raw.name], raw.line)
        if raw.name in ACTIONS_BY_NAME or raw.name in self.names:
            raise CompileError(
                CompileErrorKind.SYNTAX_ERROR,
                f"'{raw.name}' does not answer a question and cannot be a condition",
                raw.line,
                raw.col,
            )
        raise CompileError(
            CompileErrorKind.UNKNOWN_IDENTIFIER,
            f"unknown condition '{raw.name}'",
            raw.line,
            raw.col,
        )

    @staticmethod
    def _check_no_args(call: _Call) -> None:
        if call.argc:
            raise CompileError(
                CompileErrorKind.ARITY_MISMATCH,
                f"'{call.name}' takes no arguments ({call.argc} given)",
                call.line,
                call.col,
            )


def compile_source(
    source_text: Optional[str], max_nesting_depth: int = DEFAULT_MAX_NESTING_DEPTH
) -> CompileResult:
    """Compile Karel source into a Program.

    Never raises for bad source: the failure, including nesting deeper
    than ``max_nesting_depth``, is returned as the ``error`` of the
    CompileResult.
    """
    if source_text is None:
        source_text = ""
    try:
        parser = Parser(tokenize(source_text), max_nesting_depth)
        parser.parse()
        program = Resolver(parser.definitions, parser.loose).resolve()
    except CompileError as exc:
        logger.info(f"Compilation failed: {exc}")
        return CompileResult(error=exc)

    logger.debug(
        f"Compiled {len(program.procedures)} procedure(s), entry '{program.entry}'"
    )
    return CompileResult(program=program)
