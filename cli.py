import json
import logging
import sys
import traceback

from compiler import Compiler
from diagnostics import CompileError, ParseError, format_diagnostic
from graph_state import to_graph_state
from lexer import Lexer
from parser import Parser
from scope import DEFAULT_VARIABLES
from server import DEFAULT_HOST, DEFAULT_PORT, DocumentSlot, SourceWatcher, serve


logger = logging.getLogger(__name__)

USAGE = """Usage:
  desmoscript parse <file>
  desmoscript build <file>
  desmoscript serve <file> [--host HOST] [--port PORT] [--watch]
  (optional) --strict to make undefined variables an error
  (optional) --debug to show Python traceback and debug logging"""


# Simple AST printer (so you can SEE what the parser built)
def ast_to_dict(node):
    if node is None:
        return None

    t = node.__class__.__name__
    d = {"type": t}

    if t == "Program":
        d["statements"] = [ast_to_dict(s) for s in node.statements]
    elif t == "Number":
        d["value"] = node.integer if node.fraction is None else f"{node.integer}.{node.fraction}"
    elif t == "Var":
        d["name"] = node.name
    elif t == "Point":
        d["x"] = ast_to_dict(node.x)
        d["y"] = ast_to_dict(node.y)
    elif t == "ListLiteral":
        d["items"] = [ast_to_dict(i) for i in node.items]
    elif t == "Negation":
        d["expr"] = ast_to_dict(node.expr)
    elif t == "Binary":
        d["op"] = node.op
        d["left"] = ast_to_dict(node.left)
        d["right"] = ast_to_dict(node.right)
    elif t == "Call":
        d["name"] = node.name
        d["args"] = [ast_to_dict(a) for a in node.args]
    elif t == "CompareChain":
        d["ops"] = [op for op in (node.op1, node.op2) if op is not None]
        d["terms"] = [ast_to_dict(term) for term in node.terms()]
    elif t == "Conditional":
        d["condition"] = ast_to_dict(node.condition)
        d["body"] = ast_to_dict(node.body)
        d["elifs"] = [{"condition": ast_to_dict(c), "body": ast_to_dict(b)} for c, b in node.elifs]
        d["else"] = ast_to_dict(node.else_body)
    elif t == "Definition":
        d["left"] = ast_to_dict(node.left)
        d["right"] = ast_to_dict(node.right)
    elif t == "Folder":
        d["title"] = node.title
        d["body"] = [ast_to_dict(s) for s in node.body]
    elif t == "FuncDef":
        d["name"] = node.name
        d["params"] = list(node.params)
        d["body"] = [ast_to_dict(s) for s in node.body]
    else:
        d["raw"] = str(node)

    return d


def pretty(tree, label=None, depth=0):
    # one node per line, children indented under the field that holds them:
    #   right: Binary op='+'
    #     left: Number value='1'
    head = "  " * depth + (f"{label}: " if label else "")
    if not isinstance(tree, dict):
        return head + repr(tree)

    attrs = []
    children = []
    for key, value in tree.items():
        if key == "type":
            continue
        if isinstance(value, dict):
            children.append((key, value))
        elif isinstance(value, list) and any(isinstance(v, dict) for v in value):
            children.extend((f"{key}[{i}]", v) for i, v in enumerate(value))
        else:
            attrs.append(f"{key}={value!r}")

    words = ([tree["type"]] if "type" in tree else []) + attrs
    lines = [(head + " ".join(words)).rstrip()]
    lines.extend(pretty(value, key, depth + 1) for key, value in children)
    return "\n".join(lines)


def read_source(path):
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def report(diagnostics, source, path):
    for diag in diagnostics:
        print(format_diagnostic(diag, source, path), file=sys.stderr)


def parse_source(source):
    return Parser(Lexer(source)).parse()


def build_document(path, source, strict=False):
    program = parse_source(source)
    compiler = Compiler(DEFAULT_VARIABLES, strict_variables=strict)
    fragments = compiler.compile(program)
    report(fragments.diagnostics, source, path)
    return to_graph_state(fragments)


def fail(e, source, path, debug):
    # print what went wrong and why, then exit non-zero
    if debug:
        traceback.print_exc()
    if isinstance(e, ParseError):
        report(e.diagnostics, source, path)
        print("Cannot recover! Exiting...", file=sys.stderr)
    elif isinstance(e, CompileError):
        report([e.to_diagnostic()], source, path)
    else:
        print(f"{path}: error: {e}", file=sys.stderr)
    sys.exit(1)


def cmd_parse(path, debug=False):
    source = None
    try:
        source = read_source(path)
        program = parse_source(source)
    except (OSError, ParseError) as e:
        fail(e, source, path, debug)

    print(pretty(ast_to_dict(program)))


def cmd_build(path, debug=False, strict=False):
    source = None
    try:
        source = read_source(path)
        document = build_document(path, source, strict=strict)
    except (OSError, ParseError, CompileError) as e:
        fail(e, source, path, debug)

    print(json.dumps(document, indent=2))


def cmd_serve(path, debug=False, strict=False, host=DEFAULT_HOST, port=DEFAULT_PORT, watch=False):
    source = None
    try:
        source = read_source(path)
        document = build_document(path, source, strict=strict)
    except (OSError, ParseError, CompileError) as e:
        fail(e, source, path, debug)

    slot = DocumentSlot()
    slot.publish(document)

    if watch:
        def rebuild():
            return build_document(path, read_source(path), strict=strict)

        def on_error(e):
            if isinstance(e, ParseError):
                report(e.diagnostics, None, path)
            elif isinstance(e, CompileError):
                report([e.to_diagnostic()], None, path)
            else:
                logger.error("rebuild of %s failed: %s", path, e)

        SourceWatcher(path, slot, rebuild, on_error=on_error).start()

    print(f"Serving {path} on http://{host}:{port}/data", file=sys.stderr)
    serve(slot, host, port)


def take_option(args, name):
    # removes "--name VALUE" from args and returns VALUE (or None)
    if name not in args:
        return None
    i = args.index(name)
    if i + 1 >= len(args):
        print(f"{name} expects a value")
        sys.exit(1)
    value = args[i + 1]
    del args[i:i + 2]
    return value


def take_flag(args, name):
    if name in args:
        args.remove(name)
        return True
    return False


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)

    debug = take_flag(args, "--debug")
    strict = take_flag(args, "--strict")
    watch = take_flag(args, "--watch")
    host = take_option(args, "--host") or DEFAULT_HOST
    port = take_option(args, "--port")

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if len(args) != 2:
        print(USAGE)
        sys.exit(1)

    cmd, path = args

    if cmd == "parse":
        cmd_parse(path, debug=debug)
    elif cmd == "build":
        cmd_build(path, debug=debug, strict=strict)
    elif cmd == "serve":
        try:
            port = int(port) if port is not None else DEFAULT_PORT
        except ValueError:
            print(f"--port expects a number, got {port}")
            sys.exit(1)
        cmd_serve(path, debug=debug, strict=strict, host=host, port=port, watch=watch)
    else:
        print(f"Unknown command: {cmd}")
        sys.exit(1)


if __name__ == "__main__":
    main()
