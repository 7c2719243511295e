from ast_nodes import (
    Program, Number, Var, Point, ListLiteral, Negation, Binary, Call,
    CompareChain, Conditional, Definition, Folder, FuncDef,
)
from diagnostics import Diagnostic, ParseError, Span, syntax_message
from lexer import Lexer, display_token_type


RELATION_TOKENS = {
    "EQ": "=",
    "LT": "<",
    "GT": ">",
    "LTE": "<=",
    "GTE": ">=",
}

EXPR_START = ("NUMBER", "IDENT", "LPAREN", "LBRACKET", "IF", "MINUS")
STATEMENT_START = ("FOLD", "FN") + EXPR_START


class SyntaxFailure(Exception):
    def __init__(self, diagnostic):
        super().__init__(diagnostic.message)
        self.diagnostic = diagnostic


class Parser:
    def __init__(self, lexer):
        self.lexer = lexer
        self.tokens = lexer.tokenize()
        self.index = 0
        self.block_depth = 0
        self.diagnostics = []
        self.fatal = False

    @property
    def current_token(self):
        return self.tokens[self.index]

    @property
    def previous_token(self):
        return self.tokens[max(self.index - 1, 0)]

    def advance(self):
        if self.current_token.type != "EOF":
            self.index += 1

    # move to next token, but only if it matches what we expect
    def eat(self, token_type):
        tok = self.current_token
        if tok.type != token_type:
            self.fail((token_type,))
        self.advance()
        return tok

    def fail(self, expected_types):
        tok = self.current_token
        expected = tuple(display_token_type(t) for t in expected_types)
        found = tok.describe()
        if tok.type == "EOF" and "RBRACE" in expected_types:
            # an unclosed block cannot be resynchronized
            self.fatal = True
        raise SyntaxFailure(
            Diagnostic(syntax_message(expected, found), span=tok.span, expected=expected, found=found)
        )

    def finish(self, node, start_tok):
        end = max(self.previous_token.end, start_tok.end)
        node.span = Span(start_tok.start, end, start_tok.line, start_tok.column)
        return node

    def closing_type(self):
        return "RBRACE" if self.block_depth > 0 else "EOF"

    # ---------- TOP LEVEL ----------
    def parse(self):
        program, diagnostics = self.parse_recovery()
        if diagnostics or program is None:
            raise ParseError(diagnostics)
        return program

    def parse_recovery(self):
        start_tok = self.current_token
        try:
            statements = self.statements()
        except RecursionError:
            self.diagnostics.append(
                Diagnostic("Expression nested too deeply!", span=self.current_token.span)
            )
            self.fatal = True
            statements = []
        program = self.finish(Program(statements), start_tok)

        diagnostics = sorted(
            self.lexer.diagnostics + self.diagnostics,
            key=lambda d: d.span.start if d.span is not None else 0,
        )
        if self.fatal or self.lexer.fatal:
            return None, diagnostics
        return program, diagnostics

    def statements(self):
        closing = self.closing_type()
        statements = []
        while self.current_token.type not in (closing, "EOF"):
            try:
                statements.append(self.statement())
            except SyntaxFailure as e:
                self.diagnostics.append(e.diagnostic)
                if self.fatal:
                    break
                self.synchronize()
        return statements

    def synchronize(self):
        # skip to just past the next ';' or up to the '}' closing this block
        depth = 0
        while self.current_token.type != "EOF":
            tok_type = self.current_token.type
            if tok_type == "LBRACE":
                depth += 1
            elif tok_type == "RBRACE":
                if depth == 0:
                    if self.block_depth > 0:
                        return
                    # stray '}' at top level: drop it
                    self.advance()
                    return
                depth -= 1
            elif tok_type == "SEMI" and depth == 0:
                self.advance()
                return
            self.advance()

    # ---------- STATEMENTS ----------
    def statement(self):
        if self.current_token.type == "FOLD":
            return self.folder()

        if self.current_token.type == "FN":
            return self.func_def()

        if self.current_token.type not in EXPR_START:
            self.fail(STATEMENT_START)

        start_tok = self.current_token
        left = self.expr()

        if self.current_token.type in RELATION_TOKENS:
            ops, terms = self.relation_tail()
            self.eat("SEMI")
            if ops == ["="]:
                return self.finish(Definition(left, terms[0]), start_tok)
            chain = self.finish(self.make_chain(left, ops, terms), start_tok)
            # a comparison ends its block
            closing = self.closing_type()
            if self.current_token.type != closing:
                self.fail((closing,))
            return chain

        # bare expression: nothing may follow it in this block
        closing = self.closing_type()
        if self.current_token.type != closing:
            self.fail(tuple(RELATION_TOKENS) + (closing,))
        return left

    def folder(self):
        start_tok = self.eat("FOLD")
        title = self.eat("STRING").value
        body = self.block()
        return self.finish(Folder(title, body), start_tok)

    def func_def(self):
        start_tok = self.eat("FN")
        name = self.eat("IDENT").value
        self.eat("LPAREN")

        params = []
        while self.current_token.type != "RPAREN":
            params.append(self.eat("IDENT").value)
            if self.current_token.type != "COMMA":
                break
            self.eat("COMMA")
        self.eat("RPAREN")

        body = self.block()
        return self.finish(FuncDef(name, params, body), start_tok)

    def block(self):
        self.eat("LBRACE")
        self.block_depth += 1
        statements = self.statements()
        self.block_depth -= 1
        self.eat("RBRACE")
        return statements

    # ---------- RELATIONS ----------
    def relation_tail(self):
        # one or two relational operators: a < b, a < b <= c
        ops = []
        terms = []
        while self.current_token.type in RELATION_TOKENS and len(ops) < 2:
            op_tok = self.current_token
            self.advance()
            ops.append(RELATION_TOKENS[op_tok.type])
            terms.append(self.expr())
        return ops, terms

    def make_chain(self, left, ops, terms):
        if len(ops) == 1:
            return CompareChain(left, ops[0], terms[0])
        return CompareChain(left, ops[0], terms[0], ops[1], terms[1])

    def condition(self):
        start_tok = self.current_token
        left = self.expr()
        if self.current_token.type not in RELATION_TOKENS:
            self.fail(tuple(RELATION_TOKENS))
        ops, terms = self.relation_tail()
        return self.finish(self.make_chain(left, ops, terms), start_tok)

    # ---------- EXPRESSIONS ----------
    # expr -> term
    def expr(self):
        return self.term()

    # term -> factor ((+|-) factor)*
    def term(self):
        start_tok = self.current_token
        node = self.factor()

        while self.current_token.type in ("PLUS", "MINUS"):
            op = "+" if self.current_token.type == "PLUS" else "-"
            self.advance()
            right = self.factor()
            node = self.finish(Binary(node, op, right), start_tok)

        return node

    # factor -> power ((*|/) power)*
    def factor(self):
        start_tok = self.current_token
        node = self.power()

        while self.current_token.type in ("STAR", "SLASH"):
            op = "*" if self.current_token.type == "STAR" else "/"
            self.advance()
            right = self.power()
            node = self.finish(Binary(node, op, right), start_tok)

        return node

    # power -> unary (^ unary)*, folded to the left
    def power(self):
        start_tok = self.current_token
        node = self.unary()

        while self.current_token.type == "CARET":
            self.advance()
            right = self.unary()
            node = self.finish(Binary(node, "^", right), start_tok)

        return node

    # unary -> (- unary) | primary
    def unary(self):
        if self.current_token.type == "MINUS":
            start_tok = self.current_token
            self.advance()
            return self.finish(Negation(self.unary()), start_tok)
        return self.primary()

    # primary -> NUMBER | IDENT | call | point | (expr) | list | conditional
    def primary(self):
        tok = self.current_token

        if tok.type == "NUMBER":
            self.advance()
            integer, fraction = tok.value
            return self.finish(Number(integer, fraction), tok)

        if tok.type == "IDENT":
            self.advance()
            if self.current_token.type == "LPAREN":
                args = self.arguments("LPAREN", "RPAREN")
                return self.finish(Call(tok.value, args), tok)
            return self.finish(Var(tok.value), tok)

        if tok.type == "LPAREN":
            self.advance()
            node = self.expr()
            if self.current_token.type == "COMMA":
                self.advance()
                y = self.expr()
                self.eat("RPAREN")
                return self.finish(Point(node, y), tok)
            self.eat("RPAREN")
            return node

        if tok.type == "LBRACKET":
            items = self.arguments("LBRACKET", "RBRACKET")
            return self.finish(ListLiteral(items), tok)

        if tok.type == "IF":
            return self.conditional()

        self.fail(EXPR_START)

    def arguments(self, open_type, close_type):
        # comma separated, trailing comma allowed
        self.eat(open_type)
        items = []
        while self.current_token.type != close_type:
            items.append(self.expr())
            if self.current_token.type != "COMMA":
                break
            self.eat("COMMA")
        self.eat(close_type)
        return items

    def conditional(self):
        start_tok = self.eat("IF")
        condition = self.condition()
        body = self.braced_expr()

        elifs = []
        while self.current_token.type == "ELIF":
            self.advance()
            elif_cond = self.condition()
            elifs.append((elif_cond, self.braced_expr()))

        else_body = None
        if self.current_token.type == "ELSE":
            self.advance()
            else_body = self.braced_expr()

        return self.finish(Conditional(condition, body, elifs, else_body), start_tok)

    def braced_expr(self):
        self.eat("LBRACE")
        node = self.expr()
        self.eat("RBRACE")
        return node


def parse(source):
    return Parser(Lexer(source)).parse()
