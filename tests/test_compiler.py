import threading

import pytest

from ast_nodes import Definition, FuncDef, Negation, Program, Var
from compiler import Compiler, compile_source, helper_name, subscriptify, subscriptify_with
from diagnostics import CompileError
from fragments import IdCounter
from parser import parse


def compile_with(source, variables=("x", "y", "t"), **kwargs):
    compiler = Compiler(variables, **kwargs)
    return compiler, compiler.compile(parse(source))


def latex(source, variables=("x", "y", "t")):
    return compile_with(source, variables)[1].contents()


def test_subscriptify_single_letter_is_unchanged():
    for name in ("x", "a", "Q", "_"):
        assert subscriptify(name) == name


def test_subscriptify_puts_the_rest_in_one_group():
    for name in ("ab", "speed", "x1", "theta_2"):
        out = subscriptify(name)
        assert out == f"{name[0]}_{{{name[1:]}}}"
        assert out.count("_{") == 1


def test_helper_naming():
    assert helper_name("dist", "sq") == "distSq"
    assert subscriptify_with("dist", "sq") == "d_{istSq}"
    assert subscriptify_with("f", "b") == subscriptify(helper_name("f", "b"))


def test_definitions_in_order():
    compiler, out = compile_with("x=3;y=x+2;", variables=())
    assert out.contents() == ["x=3", "y=\\left(x+2\\right)"]
    assert [f.id for f in out] == ["1", "2"]
    assert all(f.folder_id is None for f in out)
    assert compiler.scope.variable_names() == ["x", "y"]
    assert out.diagnostics == []


def test_use_before_definition_is_reported():
    _, out = compile_with("y=x+1;x=2;", variables=())
    assert [d.message for d in out.diagnostics] == ["Variable 'x' is undefined."]
    assert out.diagnostics[0].severity == "warning"
    # still rendered
    assert out.contents()[0] == "y=\\left(x+1\\right)"


def test_use_after_definition_is_fine():
    _, out = compile_with("x=2;y=x+1;", variables=())
    assert out.diagnostics == []


def test_definition_does_not_see_itself():
    _, out = compile_with("a=a+1;", variables=())
    assert [d.message for d in out.diagnostics] == ["Variable 'a' is undefined."]


def test_strict_variables():
    with pytest.raises(CompileError, match="Variable 'q' is undefined."):
        compile_with("y=q;", strict_variables=True)


def test_numbers():
    assert latex("a=3; b=2.50; c=0.05;") == ["a=3", "b=2.50", "c=0.05"]


def test_long_names_are_subscripted():
    assert latex("speed=2; d=speed*t;") == ["s_{peed}=2", "d=s_{peed}\\cdot t"]


def test_operator_templates():
    assert latex("a = x/y;") == ["a=\\frac{x}{y}"]
    assert latex("a = x - -y;") == ["a=\\left(x--y\\right)"]
    assert latex("a = x^2;") == ["a=x^{2}"]
    assert latex("a = (x+1)^2;") == ["a=\\left(x+1\\right)^{2}"]
    assert latex("a = -x^2;") == ["a=\\left(-x\\right)^{2}"]
    assert latex("a = (x*y)^t;") == ["a=\\left(x\\cdot y\\right)^{t}"]


def test_builtin_call():
    assert latex("sin(x)") == ["\\operatorname{sin}\\left(x\\right)"]
    assert latex("a = max(x, 1);") == ["a=\\operatorname{max}\\left(x,1\\right)"]


def test_unknown_function_is_fatal():
    with pytest.raises(CompileError) as excinfo:
        compile_with("a = foo(1);")
    assert "foo" in str(excinfo.value)
    assert "does not exist" in str(excinfo.value)


def test_comparison_statement():
    assert latex("y <= x^2;") == ["y\\le x^{2}"]
    assert latex("0 < x < 1;") == ["0<x<1"]
    assert latex("x = y = t;") == ["x=y=t"]


def test_point_and_list():
    assert latex("(1, x)") == ["(1,x)"]
    assert latex("a = [1, 2.5, x];") == ["a=[1,2.5,x]"]


def test_conditional():
    assert latex("a = if x < 0 { -x } else { x };") == ["a=\\left\\{x<0:-x,x\\right\\}"]
    assert latex("if x < 0 { 0 } elif x >= 1 { 1 }") == ["\\left\\{x<0:0,x\\ge 1:1\\right\\}"]


def test_folder():
    _, out = compile_with('fold "Main" { a=1; }')
    marker, body = out
    assert marker.content == "\\folder Main"
    assert marker.folder_id is None
    assert body.content == "a=1"
    assert body.folder_id == marker.id
    assert [marker.id, body.id] == ["1", "2"]


def test_statements_after_folder_are_untagged():
    _, out = compile_with('fold "F" { (1, 2) } b = 1;')
    assert [(f.content, f.folder_id) for f in out] == [
        ("\\folder F", None),
        ("(1,2)", "1"),
        ("b=1", None),
    ]


def test_nested_folder_is_fatal():
    with pytest.raises(CompileError, match="folder inside a folder"):
        compile_with('fold "a" { fold "b" { c=1; } }')


def test_function_with_helpers():
    compiler, out = compile_with("fn f(a, b) { c = a + b; d = c * 2; d - 1 }", variables=())
    assert out.contents() == [
        "\\folder f",
        "f_{C}\\left(a,b\\right)=\\left(a+b\\right)",
        "f_{D}\\left(a,b\\right)=f_{C}\\left(a,b\\right)\\cdot 2",
        "f\\left(a,b\\right)=\\left(f_{D}\\left(a,b\\right)-1\\right)",
    ]
    assert [f.folder_id for f in out] == [None, "1", "1", "1"]
    assert out.diagnostics == []
    assert {"fC", "fD", "f"} <= compiler.scope.functions
    # parameters stay local to the function
    assert compiler.scope.variable_names() == []


def test_function_with_long_names():
    assert latex("fn dist(p) { sq = p * p; sqrt(sq) }") == [
        "\\folder dist",
        "d_{istSq}\\left(p\\right)=p\\cdot p",
        "d_{ist}\\left(p\\right)=\\operatorname{sqrt}\\left(d_{istSq}\\left(p\\right)\\right)",
    ]


def test_function_is_callable_afterwards():
    assert latex("fn g(a) { a^2 } b = g(3);")[-1] == "b=g\\left(3\\right)"


def test_function_is_not_callable_before_definition():
    with pytest.raises(CompileError, match="does not exist"):
        compile_with("b = g(3); fn g(a) { a^2 }")


def test_function_sees_outer_variables():
    _, out = compile_with("k = 2; fn g(a) { k * a }", variables=())
    assert out.diagnostics == []
    assert out.contents()[-1] == "g\\left(a\\right)=k\\cdot a"


def test_nested_function_is_fatal():
    with pytest.raises(CompileError, match="function inside of a function"):
        compile_with("fn f(a) { fn g(b) { b } a }")


def test_folder_in_function_is_fatal():
    with pytest.raises(CompileError, match="folder inside of a function"):
        compile_with('fn f(a) { fold "x" { b = 1; } a }')


def test_function_ending_in_definition_is_fatal():
    with pytest.raises(CompileError, match="must end with an expression"):
        compile_with("fn f(a) { b = a; }")


def test_function_definition_needs_single_variable():
    with pytest.raises(CompileError, match="single variable"):
        compile_with("fn f(a) { a + 1 = 2; a }")


def test_only_final_function_item_may_be_an_expression():
    program = Program([FuncDef("f", ["a"], [Var("a"), Definition(Var("b"), Var("a")), Var("a")])])
    with pytest.raises(CompileError, match="Only the final statement"):
        Compiler().compile(program)


def test_function_inside_folder_takes_the_folder():
    _, out = compile_with('fold "F" { fn g(a) { a } }')
    assert [(f.content, f.folder_id) for f in out] == [
        ("\\folder F", None),
        ("\\folder g", "1"),
        ("g\\left(a\\right)=a", "1"),
    ]


def test_ids_strictly_increase():
    _, out = compile_with('a = 1; fold "F" { b = 2; c = 3; } fn g(p) { q = p; q }')
    ids = [int(f.id) for f in out]
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)
    assert ids[0] == 1


def test_each_compiler_has_its_own_counter():
    first = compile_source("a = 1; b = 2;")
    second = compile_source("c = 3;")
    assert [f.id for f in first] == ["1", "2"]
    assert [f.id for f in second] == ["1"]


def test_id_counter_is_thread_safe():
    counter = IdCounter()
    seen = []
    lock = threading.Lock()

    def worker():
        ids = [counter.next() for _ in range(500)]
        with lock:
            seen.extend(ids)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()

    assert len(seen) == 4000
    assert len(set(seen)) == 4000
    assert counter.last == 4000


def test_function_defined_twice():
    with pytest.raises(CompileError, match="Function 'g' already defined."):
        compile_with("fn g(a) { a } fn g(b) { b }")


def test_helper_clashes_with_function():
    with pytest.raises(CompileError, match="Function 'fB' already defined."):
        compile_with("fn fB(p) { p } fn f(a) { b = a; b }")


def test_function_clashes_with_helper():
    with pytest.raises(CompileError, match="Function 'fB' already defined."):
        compile_with("fn f(a) { b = a; b } fn fB(p) { p }")


def test_deep_expression_is_a_compile_error():
    node = Var("x")
    for _ in range(5000):
        node = Negation(node)
    with pytest.raises(CompileError, match="nested too deeply"):
        Compiler(("x",)).compile(Program([node]))
