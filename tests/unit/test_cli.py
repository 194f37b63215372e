import json
import os
import pathlib
import subprocess
import sys
import tempfile

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
SCRIPT = os.path.join(REPO_ROOT, "bloks_parser.py")

PAYLOAD = """
(bk.action.map.Make,
    (bk.action.array.Make, "login_type", "login_source"),
    (bk.action.array.Make, "Password", (bk.action.i32.Const, 3))
)
"""


def _run(data, *flags):
    with tempfile.NamedTemporaryFile("w", suffix=".bloks", delete=False, encoding="utf-8") as f:
        f.write(data)
        fname = f.name
    try:
        cmd = [sys.executable, SCRIPT, fname, *flags]
        return subprocess.run(cmd, capture_output=True, text=True, encoding="utf-8")
    finally:
        pathlib.Path(fname).unlink(missing_ok=True)


def test_cli_prints_json():
    cp = _run(PAYLOAD)
    assert cp.returncode == 0
    out = json.loads(cp.stdout)
    assert out[0] == "bk.action.map.Make"
    assert out[2] == ["bk.action.array.Make", "Password", ["bk.action.i32.Const", 3.0]]

def test_cli_basic_processors_and_pretty():
    cp = _run(PAYLOAD, "--basic", "--pretty")
    assert cp.returncode == 0
    assert json.loads(cp.stdout) == ["map", ["array", "login_type", "login_source"], ["array", "Password", 3.0]]
    assert "\n  " in cp.stdout

def test_cli_find_map():
    cp = _run(PAYLOAD, "--basic", "--find-map", "login_source")
    assert cp.returncode == 0
    assert json.loads(cp.stdout) == {"login_type": "Password", "login_source": 3.0}

def test_cli_find_map_missing_key():
    cp = _run(PAYLOAD, "--basic", "--find-map", "nope")
    assert cp.returncode == 2
    assert "no map containing key 'nope'" in cp.stderr

def test_cli_debug_prints_bloks_notation():
    cp = _run('(#tag, "a\\nb", 1.50)', "--debug")
    assert cp.returncode == 0
    assert cp.stdout.strip() == '(#tag, "a\\nb", 1.5)'

def test_cli_reports_errors_on_stderr():
    cp = _run("(test)extra")
    assert cp.returncode == 1
    assert cp.stdout == ""
    assert "BloksParserError: unexpected character 'e' at offset 6" in cp.stderr

def test_cli_max_depth():
    cp = _run("(a, (b, (c)))", "--max-depth", "2")
    assert cp.returncode == 1
    assert "depth limit 2 exceeded" in cp.stderr

def test_cli_reads_stdin():
    cp = subprocess.run([sys.executable, SCRIPT, "-"], input="(a, 1)", capture_output=True, text=True)
    assert cp.returncode == 0
    assert json.loads(cp.stdout) == ["a", 1.0]

def test_cli_escapes_lone_surrogates_in_json():
    cp = subprocess.run([sys.executable, SCRIPT, "-"], input='(t, "\\ud83d\\ude00")',
                        capture_output=True, text=True, encoding="utf-8")
    assert cp.returncode == 0, cp.stderr
    assert cp.stdout.strip() == '["t","\\ud83d\\ude00"]'

def test_cli_find_map_escapes_lone_surrogates():
    payload = '(bk.action.map.Make, (bk.action.array.Make, "k"), (bk.action.array.Make, "\\ud83d"))'
    cp = _run(payload, "--basic", "--find-map", "k")
    assert cp.returncode == 0, cp.stderr
    assert cp.stdout.strip() == '{"k":"\\ud83d"}'
