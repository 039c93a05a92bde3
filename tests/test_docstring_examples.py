import ast
from pathlib import Path

import pytest

_SRC = Path(__file__).resolve().parents[1] / "src"
_MODULES = sorted(
    path
    for package in ("taskwire", "twr")
    for path in (_SRC / package).rglob("*.py")
    if "__pycache__" not in path.parts
)


def _functions(path: Path) -> list[ast.FunctionDef | ast.AsyncFunctionDef]:
    tree = ast.parse(path.read_text(encoding="utf-8"))
    return [node for node in ast.walk(tree) if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))]


@pytest.mark.parametrize("path", _MODULES, ids=lambda path: str(path.relative_to(_SRC)))
def test_every_function_documents_a_python_example(path: Path) -> None:
    problems: list[str] = []
    for node in _functions(path):
        doc = ast.get_docstring(node)
        where = f"{path.name}:{node.lineno}:{node.name}"
        if not doc:
            problems.append(f"{where} has no docstring")
        elif "Example:" not in doc or "```python" not in doc:
            problems.append(f"{where} has no fenced python Example")

    assert not problems, "\n".join(problems)
