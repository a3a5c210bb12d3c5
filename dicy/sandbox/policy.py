"""Static checks applied to agent source before it is compiled.

Agent programs get no imports, no module-level rebinding tricks, and no
access to underscore-prefixed names or attributes (which is where Python
keeps its introspection hooks). A handful of frame and code attributes
that lead back to real globals are denied by name as well.
"""

import ast

DENIED_ATTRIBUTES = frozenset(
    {
        "ag_frame",
        "cr_frame",
        "f_back",
        "f_builtins",
        "f_globals",
        "f_locals",
        "format",
        "format_map",
        "gi_code",
        "gi_frame",
        "mro",
        "tb_frame",
        "tb_next",
    }
)


class PolicyViolation(ValueError):
    """Agent source uses a construct that is not allowed."""

    def __init__(self, message: str, lineno: int = 0):
        self.lineno = lineno
        super().__init__(f"line {lineno}: {message}" if lineno else message)


class _PolicyVisitor(ast.NodeVisitor):
    def _fail(self, node: ast.AST, message: str) -> None:
        raise PolicyViolation(message, getattr(node, "lineno", 0))

    def visit_Import(self, node: ast.Import) -> None:
        self._fail(node, "imports are not allowed")

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        self._fail(node, "imports are not allowed")

    def visit_Global(self, node: ast.Global) -> None:
        self._fail(node, "global statements are not allowed")

    def visit_Nonlocal(self, node: ast.Nonlocal) -> None:
        self._fail(node, "nonlocal statements are not allowed")

    def visit_Name(self, node: ast.Name) -> None:
        if node.id.startswith("_"):
            self._fail(node, f"name '{node.id}' is not allowed")

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if node.attr.startswith("_") or node.attr in DENIED_ATTRIBUTES:
            self._fail(node, f"attribute '{node.attr}' is not allowed")
        self.generic_visit(node)

    def visit_MatchClass(self, node: ast.MatchClass) -> None:
        for attr in node.kwd_attrs:
            if attr.startswith("_") or attr in DENIED_ATTRIBUTES:
                self._fail(node, f"attribute pattern '{attr}' is not allowed")
        self.generic_visit(node)


def check_source(code: str) -> ast.Module:
    """Parse agent source and enforce the policy.

    Returns:
        The parsed module, ready for ``compile``

    Raises:
        SyntaxError: If the source does not parse
        PolicyViolation: If the source uses a denied construct
    """
    tree = ast.parse(code, filename="<agent>", mode="exec")
    _PolicyVisitor().visit(tree)
    return tree
