"""
Jacques parser: recursive descent, one method per grammar production.

Precedence, loosest first:
    assignment  :=  =
    logical     &&  ||
    equality    ==  !=
    relational  <  >  <=  >=
    additive    +  -
    multiplicative  *  /  %
    unary       !  -
    postfix     call, member, index, ++
    primary

`(` opens either a lambda parameter list or a parenthesized expression; the
choice is made by `_lambda_ahead`, a non-destructive scan that restores the
token cursor before returning.
"""
from typing import List, Optional

from jacques import jacques_tokens as tk
from jacques.jacques_tokens import Token, tokenize
from jacques.jacques_errors import JacquesSyntaxError
from jacques.jacques_ast import (
    PUBLIC, PRIVATE, PROTECTED,
    Node, Program, Block, NumberLiteral, StringLiteral, BooleanLiteral, Identifier,
    ArrayLiteral, RecordLiteral, BinaryExpression, UnaryExpression, UpdateExpression,
    MemberExpression, CallExpression, Assignment, TypeDeclaration, Parameter,
    FunctionDeclaration, Lambda, ReturnStatement, IfStatement, WhileStatement,
    ClassProperty, ClassMethod, ClassAccessor, ClassDeclaration,
    ImportDeclaration, ExportDeclaration,
)

ASSIGN_KINDS = (tk.ASSIGN, tk.CONST_ASSIGN)
KEYWORD_KINDS = frozenset(tk.KEYWORDS.values())
MODIFIER_KINDS = (tk.STATIC, tk.PRIVATE, tk.PROTECTED, tk.CONST)
OPENERS = (tk.LPAREN, tk.LBRACKET, tk.LBRACE)
CLOSERS = (tk.RPAREN, tk.RBRACKET, tk.RBRACE)


class Parser:
    """Recursive descent parser for Jacques."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.kind != tk.EOF:
            self.pos += 1
        return tok

    def at(self, *kinds: str) -> bool:
        return self.current().kind in kinds

    def match(self, *kinds: str) -> bool:
        if self.at(*kinds):
            self.advance()
            return True
        return False

    def expect(self, kind: str, what: str) -> Token:
        if not self.at(kind):
            self.error(f"Expected {what} but found {self._describe(self.current())}")
        return self.advance()

    def expect_ident(self, what: str = "identifier") -> str:
        return self.expect(tk.IDENTIFIER, what).value

    def error(self, message: str, token: Optional[Token] = None):
        tok = token or self.current()
        raise JacquesSyntaxError(message, tok.line, tok.col)

    def _describe(self, tok: Token) -> str:
        if tok.kind == tk.EOF:
            return "end of input"
        if tok.kind == tk.STRING:
            return f'"{tok.value}"'
        if tok.kind == tk.NUMBER:
            return f"number {tok.value:g}"
        return f"'{tok.value}'"

    def _pos(self, tok: Token) -> dict:
        return {"line": tok.line, "col": tok.col}

    def _skip_semicolons(self):
        while self.match(tk.SEMICOLON):
            pass

    # ── Program and statements ───────────────────────────────

    def parse(self) -> Program:
        first = self.current()
        body = []
        self._skip_semicolons()
        while not self.at(tk.EOF):
            body.append(self.statement())
        return Program(tuple(body), **self._pos(first))

    def statement(self) -> Node:
        tok = self.current()
        match tok.kind:
            case tk.IF:
                node = self.if_statement()
            case tk.WHILE:
                node = self.while_statement()
            case tk.RETURN:
                node = self.return_statement()
            case tk.CLASS:
                node = self.class_declaration()
            case tk.IMPORT:
                node = self.import_declaration()
            case tk.EXPORT:
                node = self.export_declaration()
            case tk.FUNCTION if self.peek(1).kind == tk.IDENTIFIER:
                node = self.function_declaration()
            case tk.IDENTIFIER | tk.RESULT if self.peek(1).kind == tk.COLON:
                node = self.typed_declaration()
            case _:
                node = self.expression()
        self._skip_semicolons()
        return node

    def block_until(self, *terminators: str) -> tuple:
        """Statements up to (not including) one of `terminators`."""
        body = []
        self._skip_semicolons()
        while not self.at(*terminators):
            if self.at(tk.EOF):
                self.error("Expected 'end' but found end of input")
            body.append(self.statement())
        return tuple(body)

    def if_statement(self) -> IfStatement:
        start = self.expect(tk.IF, "'if'")
        test = self.expression()
        consequent = self.block_until(tk.END)
        self.expect(tk.END, "'end'")
        alternate = None
        if self.at(tk.ELSE):
            self.advance()
            if self.at(tk.IF):
                alternate = (self.if_statement(),)
            else:
                alternate = self.block_until(tk.END)
                self.expect(tk.END, "'end'")
        return IfStatement(test, consequent, alternate, **self._pos(start))

    def while_statement(self) -> WhileStatement:
        start = self.expect(tk.WHILE, "'while'")
        condition = self.expression()
        body = self.block_until(tk.END)
        self.expect(tk.END, "'end'")
        return WhileStatement(condition, body, **self._pos(start))

    def return_statement(self) -> ReturnStatement:
        start = self.expect(tk.RETURN, "'return'")
        if self.at(tk.SEMICOLON, tk.END, tk.EOF, tk.RBRACE):
            return ReturnStatement(None, **self._pos(start))
        return ReturnStatement(self.expression(), **self._pos(start))

    def typed_declaration(self) -> Node:
        """`name: Type`, optionally followed by `= expr` or `:= expr`."""
        name_tok = self.advance()
        self.expect(tk.COLON, "':'")
        type_name = self.expect_ident("type name")
        target = Identifier(name_tok.value, **self._pos(name_tok))
        if self.at(*ASSIGN_KINDS):
            op = self.advance()
            value = self.expression()
            return Assignment(target, value, op.kind == tk.CONST_ASSIGN, type_name, **self._pos(name_tok))
        return TypeDeclaration(name_tok.value, type_name, **self._pos(name_tok))

    # ── Functions ────────────────────────────────────────────

    def function_declaration(self, is_expression: bool = False) -> FunctionDeclaration:
        """`function [name](params) body`; also used for function expressions."""
        start = self.expect(tk.FUNCTION, "'function'")
        name = None
        if self.at(tk.IDENTIFIER):
            name = self.advance().value
        self.expect(tk.LPAREN, "'('")
        params = self.parameter_list()
        body = self.function_body()
        return FunctionDeclaration(name, params, body, is_expression, **self._pos(start))

    def function_body(self) -> tuple:
        """Either `=> expr` or a statement block closed by `end`."""
        if self.at(tk.ARROW):
            arrow = self.advance()
            value = self.expression()
            return (ReturnStatement(value, **self._pos(arrow)),)
        body = self.block_until(tk.END)
        self.expect(tk.END, "'end'")
        return body

    def parameter_list(self) -> tuple:
        """Parameters after an opening '(' up to and including the closing ')'."""
        params = []
        while not self.at(tk.RPAREN):
            params.append(self.parameter())
            if not self.match(tk.COMMA):
                break
        self.expect(tk.RPAREN, "')'")
        return tuple(params)

    def parameter(self) -> Parameter:
        start = self.current()
        shorthand = self.match(tk.AT)
        name = self.expect_ident("parameter name")
        type_annotation = None
        default = None
        if self.match(tk.COLON):
            type_annotation = self.expect_ident("type name")
        if self.at(tk.CONST_ASSIGN):
            self.error("Parameters cannot be defined as constants")
        if self.match(tk.ASSIGN):
            default = self.expression()
        return Parameter(name, type_annotation, default, shorthand, **self._pos(start))

    def _lambda_ahead(self) -> bool:
        """True when the cursor starts a lambda rather than a parenthesized expression."""
        if self.at(tk.IDENTIFIER):
            return self.peek(1).kind == tk.ARROW
        if not self.at(tk.LPAREN):
            return False
        mark = self.pos
        depth = 0
        while not self.at(tk.EOF):
            tok = self.advance()
            if tok.kind in OPENERS:
                depth += 1
            elif tok.kind in CLOSERS:
                depth -= 1
                if depth == 0:
                    break
        is_lambda = depth == 0 and self.at(tk.ARROW)
        self.pos = mark
        return is_lambda

    def lambda_expression(self) -> Lambda:
        start = self.current()
        if self.at(tk.IDENTIFIER):
            name_tok = self.advance()
            params = (Parameter(name_tok.value, **self._pos(name_tok)),)
        else:
            self.expect(tk.LPAREN, "'('")
            params = self.parameter_list()
        self.expect(tk.ARROW, "'=>'")
        if self.at(tk.LBRACE) and self._block_ahead():
            brace = self.advance()
            body = self.block_until(tk.RBRACE)
            self.expect(tk.RBRACE, "'}'")
            return Lambda(params, Block(body, **self._pos(brace)), **self._pos(start))
        return Lambda(params, self.expression(), **self._pos(start))

    def _block_ahead(self) -> bool:
        """A `{` after `=>` opens a block unless it looks like a record literal."""
        nxt = self.peek(1)
        if nxt.kind == tk.RBRACE:
            return False
        if (nxt.kind in (tk.IDENTIFIER, tk.STRING) or nxt.kind in KEYWORD_KINDS) and self.peek(2).kind == tk.COLON:
            return False
        return True

    # ── Expressions ──────────────────────────────────────────

    def expression(self) -> Node:
        if self._lambda_ahead():
            return self.lambda_expression()
        if self._assignment_ahead():
            target = self.simple_target()
            return self.finish_assignment(target)
        expr = self.logical()
        if self.at(*ASSIGN_KINDS):
            if not isinstance(expr, (Identifier, MemberExpression)):
                self.error("Invalid assignment target")
            return self.finish_assignment(expr)
        return expr

    def _assignment_ahead(self) -> bool:
        """Fixed-lookahead recognition of `x =`, `@x =`, `self.x =` and `obj.x =`."""
        k0, k1, k2, k3 = (self.peek(i).kind for i in range(4))
        if k0 in (tk.IDENTIFIER, tk.RESULT, tk.SELF) and k1 in ASSIGN_KINDS:
            return True
        if k0 == tk.AT and k1 == tk.IDENTIFIER and k2 in ASSIGN_KINDS:
            return True
        if k0 in (tk.IDENTIFIER, tk.SELF) and k1 == tk.DOT and self._is_name(self.peek(2)) and k3 in ASSIGN_KINDS:
            return True
        return False

    def simple_target(self) -> Node:
        tok = self.advance()
        if tok.kind == tk.AT:
            name = self.advance()
            return Identifier("@" + name.value, **self._pos(tok))
        base = Identifier(str(tok.value), **self._pos(tok))
        if self.match(tk.DOT):
            name = self.advance()
            return MemberExpression(base, name.value, False, **self._pos(tok))
        return base

    def finish_assignment(self, target: Node) -> Assignment:
        op = self.advance()
        value = self.expression()
        return Assignment(target, value, op.kind == tk.CONST_ASSIGN, line=target.line, col=target.col)

    def _binary_level(self, next_level, kinds) -> Node:
        left = next_level()
        while self.at(*kinds):
            op = self.advance()
            right = next_level()
            left = BinaryExpression(op.value, left, right, line=left.line, col=left.col)
        return left

    def logical(self) -> Node:
        return self._binary_level(self.equality, (tk.AND, tk.OR))

    def equality(self) -> Node:
        return self._binary_level(self.relational, (tk.EQUAL, tk.NOT_EQUAL))

    def relational(self) -> Node:
        return self._binary_level(self.additive, (tk.LESS, tk.GREATER, tk.LESS_EQUAL, tk.GREATER_EQUAL))

    def additive(self) -> Node:
        return self._binary_level(self.multiplicative, (tk.PLUS, tk.MINUS))

    def multiplicative(self) -> Node:
        return self._binary_level(self.unary, (tk.STAR, tk.SLASH, tk.PERCENT))

    def unary(self) -> Node:
        if self.at(tk.BANG, tk.MINUS):
            op = self.advance()
            operand = self.unary()
            return UnaryExpression(op.value, operand, **self._pos(op))
        return self.postfix()

    def postfix(self) -> Node:
        expr = self.primary()
        while True:
            if self.at(tk.DOT):
                self.advance()
                name_tok = self.current()
                if not self._is_name(name_tok):
                    self.error(f"Expected property name but found {self._describe(name_tok)}")
                self.advance()
                expr = MemberExpression(expr, str(name_tok.value), False, line=expr.line, col=expr.col)
            elif self.at(tk.LBRACKET):
                self.advance()
                index = self.expression()
                self.expect(tk.RBRACKET, "']'")
                expr = MemberExpression(expr, index, True, line=expr.line, col=expr.col)
            elif self.at(tk.LPAREN):
                self.advance()
                args = self.argument_list()
                expr = CallExpression(expr, args, line=expr.line, col=expr.col)
            elif self.at(tk.INCREMENT):
                op = self.advance()
                if not isinstance(expr, Identifier):
                    self.error("'++' requires a variable", op)
                expr = UpdateExpression(op.value, expr, line=expr.line, col=expr.col)
            else:
                return expr

    def argument_list(self) -> tuple:
        args = []
        while not self.at(tk.RPAREN):
            args.append(self.expression())
            if not self.match(tk.COMMA):
                break
        self.expect(tk.RPAREN, "')'")
        return tuple(args)

    def _is_name(self, tok: Token) -> bool:
        return tok.kind == tk.IDENTIFIER or tok.kind in KEYWORD_KINDS

    def primary(self) -> Node:
        tok = self.current()
        match tok.kind:
            case tk.NUMBER:
                self.advance()
                return NumberLiteral(tok.value, **self._pos(tok))
            case tk.STRING:
                self.advance()
                return StringLiteral(tok.value, **self._pos(tok))
            case tk.BOOLEAN:
                self.advance()
                return BooleanLiteral(tok.value, **self._pos(tok))
            case tk.IDENTIFIER | tk.RESULT | tk.SELF:
                self.advance()
                return Identifier(tok.value, **self._pos(tok))
            case tk.AT:
                self.advance()
                name = self.expect_ident("property name after '@'")
                return Identifier("@" + name, **self._pos(tok))
            case tk.LPAREN:
                self.advance()
                inner = self.expression()
                self.expect(tk.RPAREN, "')'")
                return inner
            case tk.LBRACKET:
                return self.array_literal()
            case tk.LBRACE:
                return self.record_literal()
            case tk.FUNCTION:
                return self.function_declaration(is_expression=True)
            case _:
                self.error(f"Unexpected token {self._describe(tok)}")

    def array_literal(self) -> ArrayLiteral:
        start = self.expect(tk.LBRACKET, "'['")
        elements = []
        while not self.at(tk.RBRACKET):
            elements.append(self.expression())
            if not self.match(tk.COMMA):
                break
        self.expect(tk.RBRACKET, "']'")
        return ArrayLiteral(tuple(elements), **self._pos(start))

    def record_literal(self) -> RecordLiteral:
        start = self.expect(tk.LBRACE, "'{'")
        entries = []
        while not self.at(tk.RBRACE):
            key_tok = self.current()
            if key_tok.kind != tk.STRING and not self._is_name(key_tok):
                self.error(f"Expected record key but found {self._describe(key_tok)}")
            self.advance()
            self.expect(tk.COLON, "':'")
            entries.append((str(key_tok.value), self.expression()))
            if not self.match(tk.COMMA):
                break
        self.expect(tk.RBRACE, "'}'")
        return RecordLiteral(tuple(entries), **self._pos(start))

    # ── Classes ──────────────────────────────────────────────

    def class_declaration(self) -> ClassDeclaration:
        start = self.expect(tk.CLASS, "'class'")
        name = self.expect_ident("class name")
        superclass = None
        if self.match(tk.EXTENDS):
            superclass = self.expect_ident("superclass name")
        members = []
        constructor = None
        self._skip_semicolons()
        while not self.at(tk.END):
            if self.at(tk.EOF):
                self.error("Expected 'end' to close class body but found end of input")
            member = self.class_member()
            if isinstance(member, FunctionDeclaration):
                if constructor is not None:
                    self.error("A class can only have one constructor", self.tokens[self.pos - 1])
                constructor = member
            else:
                members.append(member)
            self._skip_semicolons()
        self.expect(tk.END, "'end'")
        return ClassDeclaration(name, superclass, tuple(members), constructor, **self._pos(start))

    def class_member(self) -> Node:
        start = self.current()
        modifiers = set()
        while self.at(*MODIFIER_KINDS):
            mod = self.advance()
            if mod.kind in modifiers:
                self.error(f"Duplicate modifier '{mod.value}'", mod)
            modifiers.add(mod.kind)
        if tk.PRIVATE in modifiers and tk.PROTECTED in modifiers:
            self.error("A member cannot be both private and protected", start)
        visibility = PRIVATE if tk.PRIVATE in modifiers else PROTECTED if tk.PROTECTED in modifiers else PUBLIC
        is_static = tk.STATIC in modifiers

        if self.at(tk.CONSTRUCTOR):
            if modifiers:
                self.error("Modifiers are not allowed on a constructor", start)
            ctor_tok = self.advance()
            self.expect(tk.LPAREN, "'('")
            params = self.parameter_list()
            body = self.function_body()
            return FunctionDeclaration("constructor", params, body, **self._pos(ctor_tok))

        if self.at(tk.PROPERTY):
            if modifiers:
                self.error("Modifiers are not allowed on a property accessor", start)
            return self.accessor_declaration()

        name_tok = self.current()
        name = self.expect_ident("member name")
        if self.at(tk.LPAREN):
            if tk.CONST in modifiers:
                self.error("Methods cannot be const", start)
            self.advance()
            params = self.parameter_list()
            body = self.function_body()
            function = FunctionDeclaration(name, params, body, **self._pos(name_tok))
            return ClassMethod(name, function, visibility, is_static, **self._pos(start))

        type_annotation = None
        value = None
        is_constant = tk.CONST in modifiers
        if self.match(tk.COLON):
            type_annotation = self.expect_ident("type name")
        if self.at(*ASSIGN_KINDS):
            op = self.advance()
            is_constant = is_constant or op.kind == tk.CONST_ASSIGN
            value = self.expression()
        return ClassProperty(name, value, type_annotation, visibility, is_static, is_constant, **self._pos(start))

    def accessor_declaration(self) -> ClassAccessor:
        start = self.expect(tk.PROPERTY, "'property'")
        name = self.expect_ident("property name")
        getter = None
        setter = None
        self._skip_semicolons()
        while not self.at(tk.END):
            part = self.current()
            if part.kind == tk.GET and getter is None:
                self.advance()
                self.expect(tk.LPAREN, "'('")
                params = self.parameter_list()
                if params:
                    self.error("A getter takes no parameters", part)
                getter = FunctionDeclaration(f"get_{name}", params, self.function_body(), **self._pos(part))
            elif part.kind == tk.SET and setter is None:
                self.advance()
                self.expect(tk.LPAREN, "'('")
                params = self.parameter_list()
                if len(params) != 1:
                    self.error("A setter takes exactly one parameter", part)
                setter = FunctionDeclaration(f"set_{name}", params, self.function_body(), **self._pos(part))
            else:
                self.error(f"Expected 'get', 'set' or 'end' in property but found {self._describe(part)}")
            self._skip_semicolons()
        self.expect(tk.END, "'end'")
        return ClassAccessor(name, getter, setter, **self._pos(start))

    # ── Modules ──────────────────────────────────────────────

    def import_declaration(self) -> ImportDeclaration:
        start = self.expect(tk.IMPORT, "'import'")
        names = [self.expect_ident("import name")]
        while self.match(tk.COMMA):
            names.append(self.expect_ident("import name"))
        self.expect(tk.FROM, "'from'")
        source = self.expect(tk.STRING, "module path string").value
        return ImportDeclaration(tuple(names), source, **self._pos(start))

    def export_declaration(self) -> ExportDeclaration:
        start = self.expect(tk.EXPORT, "'export'")
        declaration = self.statement()
        exportable = (
            isinstance(declaration, (ClassDeclaration, TypeDeclaration))
            or (isinstance(declaration, FunctionDeclaration) and declaration.name)
            or (isinstance(declaration, Assignment) and isinstance(declaration.target, Identifier)
                and not declaration.target.is_shorthand)
        )
        if not exportable:
            self.error("Only named declarations can be exported", start)
        return ExportDeclaration(declaration, **self._pos(start))


def parse(tokens: List[Token]) -> Program:
    return Parser(tokens).parse()


def parse_source(source: str) -> Program:
    return parse(tokenize(source))
