class ASTNode:
    # Optional source span (diagnostics.Span). Parser sets this.
    span = None


class Program(ASTNode):
    def __init__(self, statements):
        self.statements = statements


class Number(ASTNode):
    def __init__(self, integer, fraction=None):
        self.integer = integer    # digit string, e.g. "3"
        self.fraction = fraction  # digit string after the dot, or None


class Var(ASTNode):
    def __init__(self, name):
        self.name = name


class Point(ASTNode):
    def __init__(self, x, y):
        self.x = x
        self.y = y


class ListLiteral(ASTNode):
    def __init__(self, items):
        self.items = items  # list[expr]


class Negation(ASTNode):
    def __init__(self, expr):
        self.expr = expr


class Binary(ASTNode):
    def __init__(self, left, op, right):
        self.left = left
        self.op = op  # one of + - * / ^
        self.right = right


class Call(ASTNode):
    def __init__(self, name, args):
        self.name = name
        self.args = args


class CompareChain(ASTNode):
    def __init__(self, left, op1, middle, op2=None, right=None):
        # left op1 middle [op2 right]; ops are "=", "<", ">", "<=", ">="
        self.left = left
        self.op1 = op1
        self.middle = middle
        self.op2 = op2
        self.right = right

    def terms(self):
        if self.op2 is None:
            return [self.left, self.middle]
        return [self.left, self.middle, self.right]


class Conditional(ASTNode):
    def __init__(self, condition, body, elifs=None, else_body=None):
        self.condition = condition    # CompareChain
        self.body = body              # expr
        self.elifs = elifs or []      # list[(CompareChain, expr)]
        self.else_body = else_body    # expr | None


class Definition(ASTNode):
    def __init__(self, left, right):
        self.left = left
        self.right = right


class Folder(ASTNode):
    def __init__(self, title, body):
        self.title = title
        self.body = body  # list[statement]


class FuncDef(ASTNode):
    def __init__(self, name, params, body):
        self.name = name
        self.params = params  # list[str]
        self.body = body      # list[statement], last one is the result expression


# Nodes that only make sense at statement level.
STATEMENT_NODES = (Definition, Folder, FuncDef)
