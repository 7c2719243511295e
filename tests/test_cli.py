import json
import os
import subprocess
import sys


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def run_cli(*args):
    cli = os.path.join(ROOT, "cli.py")

    return subprocess.run(
        [sys.executable, cli, *args],
        text=True,
        capture_output=True,
        cwd=ROOT,
        timeout=30,
    )


def write_source(tmp_path, text):
    path = tmp_path / "main.dms"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_build_prints_graph_state(tmp_path):
    path = write_source(tmp_path, 'a = 2;\nfold "Main" { y = a * x; }\n')
    proc = run_cli("build", path)

    if proc.returncode != 0:
        raise AssertionError(f"build exited with code {proc.returncode}\nSTDERR:\n{proc.stderr}")

    doc = json.loads(proc.stdout)
    latex = [e.get("latex") for e in doc["expressions"]["list"]]
    if latex != ["a=2", None, "y=a\\cdot x"]:
        raise AssertionError(f"unexpected expressions: {latex}")
    if doc["expressions"]["list"][2]["folderId"] != doc["expressions"]["list"][1]["id"]:
        raise AssertionError("definition should sit inside the folder")


def test_unknown_function_fails_the_run(tmp_path):
    path = write_source(tmp_path, "y = foo(1);\n")
    proc = run_cli("build", path)

    assert proc.returncode == 1
    assert "foo" in proc.stderr and "does not exist" in proc.stderr
    assert proc.stdout == ""


def test_syntax_errors_are_all_reported(tmp_path):
    path = write_source(tmp_path, "a = ;\nb = );\nc = 1;\n")
    proc = run_cli("build", path)

    assert proc.returncode == 1
    assert proc.stderr.count("error: Expected") == 2
    assert "main.dms:1:5" in proc.stderr
    assert "main.dms:2:5" in proc.stderr


def test_undefined_variable_is_only_a_warning(tmp_path):
    path = write_source(tmp_path, "b = q + 1;\n")
    proc = run_cli("build", path)

    assert proc.returncode == 0
    assert "Variable 'q' is undefined." in proc.stderr
    json.loads(proc.stdout)


def test_strict_makes_undefined_variable_fatal(tmp_path):
    path = write_source(tmp_path, "b = q + 1;\n")
    proc = run_cli("build", path, "--strict")

    assert proc.returncode == 1
    assert "Variable 'q' is undefined." in proc.stderr


def test_parse_prints_tree(tmp_path):
    path = write_source(tmp_path, "a = 1 + 2;\n")
    proc = run_cli("parse", path)

    assert proc.returncode == 0
    assert "statements[0]: Definition" in proc.stdout
    assert "right: Binary op='+'" in proc.stdout
    assert "left: Number value='1'" in proc.stdout


def test_missing_file(tmp_path):
    proc = run_cli("build", str(tmp_path / "nope.dms"))
    assert proc.returncode == 1
    assert "nope.dms" in proc.stderr


def test_usage_without_arguments():
    proc = run_cli()
    assert proc.returncode == 1
    assert "Usage:" in proc.stdout


def test_deep_nesting_is_reported(tmp_path):
    path = write_source(tmp_path, "a = " + "(" * 5000 + "1" + ")" * 5000 + ";\n")
    proc = run_cli("build", path)

    assert proc.returncode == 1
    assert "nested too deeply" in proc.stderr
    assert "Traceback" not in proc.stderr
