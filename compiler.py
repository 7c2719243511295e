import logging

from ast_nodes import (
    Program, Number, Var, Point, ListLiteral, Negation, Binary, Call,
    CompareChain, Conditional, Definition, Folder, FuncDef, STATEMENT_NODES,
)
from diagnostics import CompileError, Diagnostic
from fragments import FragmentList
from parser import parse
from rewrite import replace_variables
from scope import Scope


logger = logging.getLogger(__name__)

# Functions the graphing calculator provides out of the box.
BUILTINS = frozenset({
    "sin", "cos", "tan", "sec", "csc", "cot",
    "arcsin", "arccos", "arctan", "arcsec", "arccsc", "arccot",
    "sinh", "cosh", "tanh", "sech", "csch", "coth",
    "ln", "log", "exp", "sqrt", "abs", "sign",
    "floor", "ceil", "round", "mod", "min", "max", "gcd", "lcm",
    "total", "length", "mean", "median", "stdev", "var",
    "sort", "shuffle", "join", "unique", "random",
})

RELATION_GLYPHS = {
    "=": "=",
    "<": "<",
    ">": ">",
    "<=": "\\le ",
    ">=": "\\ge ",
}


def subscriptify(name):
    # the calculator only knows one-letter names, optionally subscripted
    first, rest = name[:1], name[1:]
    if not rest:
        return first
    return f"{first}_{{{rest}}}"


def capitalize(name):
    return name[:1].upper() + name[1:]


def helper_name(func_name, var_name):
    return func_name + capitalize(var_name)


def subscriptify_with(name, extra):
    # subscriptify(helper_name(f, v)) spelled out: f, v -> f_{V}
    return f"{name[:1]}_{{{name[1:]}{capitalize(extra)}}}"


def operatorname(name):
    return f"\\operatorname{{{name}}}"


class Compiler:
    def __init__(self, variables=(), functions=None, strict_variables=False, counter=None):
        self.scope = Scope(variables, functions)
        self.strict_variables = strict_variables
        self.out = FragmentList(counter)
        self.folder_id = None

    @property
    def diagnostics(self):
        return self.out.diagnostics

    def compile(self, node):
        # entry point
        if not isinstance(node, Program):
            raise CompileError("Compiler expects a Program node at the top")

        try:
            self.compile_block(node.statements)
        except RecursionError:
            raise CompileError("Expression nested too deeply!") from None
        logger.debug("compiled %d fragments", len(self.out))
        return self.out

    def compile_block(self, statements):
        for stmt in statements:
            self.compile_stmt(stmt)

    # -------- statements --------
    def compile_stmt(self, node):
        if isinstance(node, Definition):
            self.compile_definition(node)
            return

        if isinstance(node, Folder):
            self.compile_folder(node)
            return

        if isinstance(node, FuncDef):
            self.compile_funcdef(node)
            return

        # comparison chains, conditionals, points, lists and bare expressions
        self.out.emit(self.compile_expr(node), self.folder_id)

    def compile_definition(self, node):
        if isinstance(node.left, Var):
            # the name being defined is not in scope yet; don't flag it
            left = subscriptify(node.left.name)
        else:
            left = self.compile_expr(node.left)
        right = self.compile_expr(node.right)
        self.out.emit(f"{left}={right}", self.folder_id)

        # visible from the next statement on, not to its own right side
        if isinstance(node.left, Var):
            self.scope.define_variable(node.left.name)

    def compile_folder(self, node):
        if self.folder_id is not None:
            raise CompileError("Cannot create a folder inside a folder!", node.span)

        marker = self.out.emit_folder(node.title)
        logger.debug("folder %r -> id %s", node.title, marker.id)

        start = len(self.out)
        self.folder_id = marker.id
        self.compile_block(node.body)
        self.folder_id = None

        # everything emitted inside belongs to this folder, whatever it was tagged with
        for frag in self.out.fragments[start:]:
            frag.folder_id = marker.id

    def compile_funcdef(self, node):
        if not node.body:
            raise CompileError(f"Function '{node.name}' has an empty body.", node.span)

        fold_id = self.out.emit_folder(node.name).id
        params = ",".join(subscriptify(p) for p in node.params)

        outer_scope = self.scope
        self.scope = outer_scope.with_parameters(node.params)

        helpers = []  # variables already turned into helper functions
        last = len(node.body) - 1
        for i, item in enumerate(node.body):
            if helpers:
                item = replace_variables(item, self.helper_calls(node, helpers))

            if isinstance(item, Folder):
                raise CompileError("Cannot have a folder inside of a function!", item.span)
            if isinstance(item, FuncDef):
                raise CompileError("Cannot have a function inside of a function!", item.span)

            if isinstance(item, Definition):
                if i == last:
                    raise CompileError(
                        f"Function '{node.name}' must end with an expression, not a definition.", item.span
                    )
                if not isinstance(item.left, Var):
                    raise CompileError(
                        "Definition's left side must consist of a single variable within a function.", item.span
                    )
                var_name = item.left.name
                right = self.compile_expr(item.right)
                self.out.emit(
                    f"{subscriptify_with(node.name, var_name)}\\left({params}\\right)={right}", fold_id
                )
                self.define_function(helper_name(node.name, var_name), item.span)
                helpers.append(var_name)
                continue

            if i != last:
                raise CompileError(
                    f"Only the final statement of function '{node.name}' may be a non-definition.", item.span
                )
            body = self.compile_expr(item)
            self.out.emit(f"{subscriptify(node.name)}\\left({params}\\right)={body}", fold_id)

        self.scope = outer_scope
        self.define_function(node.name, node.span)

    def define_function(self, name, span=None):
        # user functions and helpers share one namespace
        if self.scope.has_function(name):
            raise CompileError(f"Function '{name}' already defined.", span)
        self.scope.define_function(name)

    def helper_calls(self, node, helpers):
        # v -> fV(p1, p2, ...) for every helper introduced so far
        def factory(var_name):
            name = helper_name(node.name, var_name)
            return lambda: Call(name, [Var(p) for p in node.params])

        return {var_name: factory(var_name) for var_name in helpers}

    # -------- expressions --------
    def compile_expr(self, node):
        if isinstance(node, STATEMENT_NODES):
            raise CompileError(
                f"Expected only one expression, got a {node.__class__.__name__}.", node.span
            )

        if isinstance(node, Number):
            if node.fraction is None:
                return node.integer
            return f"{node.integer}.{node.fraction}"

        if isinstance(node, Var):
            if not self.scope.has_variable(node.name):
                self.undefined_variable(node)
            return subscriptify(node.name)

        if isinstance(node, Call):
            return self.compile_call(node)

        if isinstance(node, Negation):
            return f"-{self.compile_expr(node.expr)}"

        if isinstance(node, Binary):
            return self.compile_binary(node)

        if isinstance(node, Point):
            return f"({self.compile_expr(node.x)},{self.compile_expr(node.y)})"

        if isinstance(node, ListLiteral):
            return "[" + ",".join(self.compile_expr(item) for item in node.items) + "]"

        if isinstance(node, CompareChain):
            return self.compile_chain(node)

        if isinstance(node, Conditional):
            return self.compile_conditional(node)

        raise CompileError(f"Unknown expression node: {node.__class__.__name__}", node.span)

    def compile_call(self, node):
        if self.scope.has_function(node.name):
            name = subscriptify(node.name)
        elif node.name in BUILTINS:
            name = operatorname(node.name)
        else:
            raise CompileError(f"Function '{node.name}' does not exist!", node.span)

        args = ",".join(self.compile_expr(arg) for arg in node.args)
        return f"{name}\\left({args}\\right)"

    def compile_binary(self, node):
        left = self.compile_expr(node.left)
        right = self.compile_expr(node.right)

        if node.op == "*":
            return f"{left}\\cdot {right}"
        if node.op == "/":
            return f"\\frac{{{left}}}{{{right}}}"
        if node.op == "+":
            return f"\\left({left}+{right}\\right)"
        if node.op == "-":
            return f"\\left({left}-{right}\\right)"
        if node.op == "^":
            if isinstance(node.left, Negation) or (
                isinstance(node.left, Binary) and node.left.op in ("*", "/", "^")
            ):
                left = f"\\left({left}\\right)"
            return f"{left}^{{{right}}}"

        raise CompileError(f"Unknown operator: {node.op}", node.span)

    def compile_chain(self, node):
        out = self.compile_expr(node.left)
        out += RELATION_GLYPHS[node.op1] + self.compile_expr(node.middle)
        if node.op2 is not None:
            out += RELATION_GLYPHS[node.op2] + self.compile_expr(node.right)
        return out

    def compile_conditional(self, node):
        branches = [f"{self.compile_chain(node.condition)}:{self.compile_expr(node.body)}"]
        for cond, body in node.elifs:
            branches.append(f"{self.compile_chain(cond)}:{self.compile_expr(body)}")
        if node.else_body is not None:
            branches.append(self.compile_expr(node.else_body))
        return "\\left\\{" + ",".join(branches) + "\\right\\}"

    def undefined_variable(self, node):
        message = f"Variable '{node.name}' is undefined."
        if self.strict_variables:
            raise CompileError(message, node.span)
        logger.debug(message)
        self.out.diagnostics.append(Diagnostic(message, span=node.span, severity="warning"))


def compile_program(program, variables=(), functions=None, strict_variables=False):
    compiler = Compiler(variables, functions, strict_variables=strict_variables)
    return compiler.compile(program)


def compile_source(source, variables=(), functions=None, strict_variables=False):
    return compile_program(parse(source), variables, functions, strict_variables)
