DEFAULT_VARIABLES = ("x", "y", "t")


class Scope:
    """Names visible at one point of a statement list.

    Both sets only grow: a name defined by a statement is visible to the
    statements compiled after it and never removed again.
    """

    def __init__(self, variables=(), functions=None):
        # dict keys keep definition order
        self.variables = dict.fromkeys(variables)
        self.functions = functions if functions is not None else set()

    def has_variable(self, name):
        return name in self.variables

    def has_function(self, name):
        return name in self.functions

    def define_variable(self, name):
        self.variables.setdefault(name, None)

    def define_function(self, name):
        self.functions.add(name)

    def with_parameters(self, params):
        # function bodies see the caller's variables plus their parameters;
        # the function registry is shared so helpers stay visible afterwards
        child = Scope(self.variables, self.functions)
        for name in params:
            child.define_variable(name)
        return child

    def variable_names(self):
        return list(self.variables)

    def __repr__(self):
        return f"Scope(variables={self.variable_names()}, functions={sorted(self.functions)})"
