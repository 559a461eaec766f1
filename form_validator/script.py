"""
Script checks - validation logic compiled from source text.

A script is the body of a function taking the data record as `data`:

    return data.get("firstname") == "John" or "The name is not John"

Scripts see a reduced set of builtins, `re.match`/`re.search`/`re.fullmatch`
under the name `re`, and a read-only view of the data record. This limits
accidental side effects; it is not a sandbox, so only run scripts from trusted
rule authors. Compiled callables are cached per source text, so an unchanged
script is compiled once.
"""

import builtins
import functools
import re
import textwrap
from types import MappingProxyType, SimpleNamespace
from typing import Any, Callable, Mapping

ENTRY_POINT = "check"

SAFE_BUILTINS = {
    name: getattr(builtins, name)
    for name in (
        "abs", "all", "any", "bool", "dict", "enumerate", "filter", "float",
        "int", "isinstance", "len", "list", "map", "max", "min", "range",
        "reversed", "round", "set", "sorted", "str", "sum", "tuple", "zip",
        "Exception", "ValueError", "TypeError", "KeyError",
    )
}

SCRIPT_RE = SimpleNamespace(match=re.match, search=re.search, fullmatch=re.fullmatch)


@functools.lru_cache(maxsize=256)
def compile_script(source: str) -> Callable[[Mapping[str, Any]], Any]:
    """
    Compile script source into a single-argument callable.

    Raises:
        SyntaxError: If the source does not compile
    """
    body = textwrap.dedent(source).strip("\n") or "pass"
    code = compile(
        f"def {ENTRY_POINT}(data):\n{textwrap.indent(body, '    ')}\n",
        "<script>",
        "exec",
    )
    namespace = {"__builtins__": SAFE_BUILTINS, "re": SCRIPT_RE}
    exec(code, namespace)
    return namespace[ENTRY_POINT]


def run_script(source: str, data: Mapping[str, Any]) -> Any:
    """Compile (or reuse) the script and run it against the data record."""
    return compile_script(source)(MappingProxyType(dict(data)))
