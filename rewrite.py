from ast_nodes import (
    Number, Var, Point, ListLiteral, Negation, Binary, Call,
    CompareChain, Conditional, Definition, Folder, FuncDef,
)


class VariableRewriter:
    """Returns a copy of a tree with some variable references replaced.

    `replacements` maps a variable name to a factory producing the node that
    takes its place, so every occurrence gets its own fresh node.
    """

    def __init__(self, replacements):
        self.replacements = replacements

    def visit(self, node):
        if node is None:
            return None
        method = getattr(self, "visit_" + node.__class__.__name__)
        new = method(node)
        if new.span is None:
            new.span = node.span
        return new

    def visit_all(self, nodes):
        return [self.visit(n) for n in nodes]

    def visit_Number(self, node):
        return Number(node.integer, node.fraction)

    def visit_Var(self, node):
        factory = self.replacements.get(node.name)
        if factory is None:
            return Var(node.name)
        return factory()

    def visit_Point(self, node):
        return Point(self.visit(node.x), self.visit(node.y))

    def visit_ListLiteral(self, node):
        return ListLiteral(self.visit_all(node.items))

    def visit_Negation(self, node):
        return Negation(self.visit(node.expr))

    def visit_Binary(self, node):
        return Binary(self.visit(node.left), node.op, self.visit(node.right))

    def visit_Call(self, node):
        return Call(node.name, self.visit_all(node.args))

    def visit_CompareChain(self, node):
        return CompareChain(
            self.visit(node.left), node.op1, self.visit(node.middle),
            node.op2, self.visit(node.right),
        )

    def visit_Conditional(self, node):
        elifs = [(self.visit(cond), self.visit(body)) for cond, body in node.elifs]
        return Conditional(
            self.visit(node.condition), self.visit(node.body), elifs, self.visit(node.else_body)
        )

    def visit_Definition(self, node):
        return Definition(self.visit(node.left), self.visit(node.right))

    def visit_Folder(self, node):
        return Folder(node.title, self.visit_all(node.body))

    def visit_FuncDef(self, node):
        return FuncDef(node.name, list(node.params), self.visit_all(node.body))


def replace_variables(node, replacements):
    return VariableRewriter(replacements).visit(node)
