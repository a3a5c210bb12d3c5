"""Agent worker process.

Run as ``python -m dicy.sandbox.worker``. Reads one TurnRequest from stdin,
runs the agent program against a private board, and streams protocol
messages to stdout, one JSON document per line. The host kills the process
if it overruns its wall-clock budget; the OS limits set here cap CPU time
and memory independently of the host.
"""

import json
import logging
import math
import sys
from typing import Any, Callable, Dict, TextIO

from pydantic import ValidationError

from .api import AgentAPI
from .policy import PolicyViolation, check_source
from .protocol import API_VERSION, DoneMessage, ErrorMessage, TurnRequest, encode_message
from .snapshot import restore_game_state

logger = logging.getLogger(__name__)

SAFE_BUILTIN_NAMES = (
    "abs",
    "all",
    "any",
    "bool",
    "callable",
    "chr",
    "dict",
    "divmod",
    "enumerate",
    "filter",
    "float",
    "frozenset",
    "hash",
    "int",
    "isinstance",
    "iter",
    "len",
    "list",
    "map",
    "max",
    "min",
    "next",
    "ord",
    "pow",
    "range",
    "repr",
    "reversed",
    "round",
    "set",
    "slice",
    "sorted",
    "str",
    "sum",
    "tuple",
    "zip",
    "ArithmeticError",
    "AssertionError",
    "AttributeError",
    "Exception",
    "IndexError",
    "KeyError",
    "LookupError",
    "RuntimeError",
    "StopIteration",
    "TypeError",
    "ValueError",
    "ZeroDivisionError",
)


def agent_print(api: AgentAPI) -> Callable[..., None]:
    """A ``print`` lookalike that writes one agent log line per call.

    ``file`` and ``flush`` are accepted and ignored; a trailing newline in
    ``end`` is implied by the log line itself.
    """

    def _print(*parts, sep=" ", end="\n", file=None, flush=False):
        sep = " " if sep is None else sep
        end = "\n" if end is None else end
        if end.endswith("\n"):
            end = end[:-1]
        api.log(sep.join(str(p) for p in parts) + end, sep="")

    return _print


def safe_builtins(api: AgentAPI) -> Dict[str, Any]:
    """Builtins table for agent code, with ``print`` routed to the agent log."""
    import builtins

    table = {name: getattr(builtins, name) for name in SAFE_BUILTIN_NAMES}
    # Needed by class statements; unreachable by name because of the policy
    table["__build_class__"] = builtins.__build_class__
    table["print"] = agent_print(api)
    return table


def apply_resource_limits(cpu_seconds, memory_bytes) -> None:
    """Cap CPU time and address space where the OS supports it."""
    if sys.platform == "win32":
        return

    import resource

    if cpu_seconds:
        resource.setrlimit(resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds + 1))
    if memory_bytes:
        try:
            resource.setrlimit(resource.RLIMIT_AS, (memory_bytes, memory_bytes))
        except (ValueError, OSError) as e:
            # Some platforms (macOS) refuse RLIMIT_AS
            logger.warning(f"Could not limit address space: {e}")


def run_turn(request: TurnRequest, emit: Callable[[Any], None]) -> None:
    """Run one agent turn, emitting protocol messages as they happen."""
    if request.api_version != API_VERSION:
        emit(ErrorMessage(kind="protocol", error=f"Unsupported API version {request.api_version}"))
        return

    state = request.state
    try:
        board, players = restore_game_state(state)
        my_id, turn, dice_sides = state["myId"], state["turn"], state["diceSides"]
    except (KeyError, ValueError) as e:
        emit(ErrorMessage(kind="protocol", error=f"Bad game state: {e}"))
        return

    api = AgentAPI(
        board,
        players,
        my_id=my_id,
        turn=turn,
        dice_sides=dice_sides,
        storage=request.storage,
        max_moves=request.max_moves,
        emit=emit,
    )

    try:
        tree = check_source(request.code)
        code = compile(tree, "<agent>", "exec")
    except SyntaxError as e:
        emit(ErrorMessage(kind="syntax", error=f"line {e.lineno}: {e.msg}"))
        return
    except PolicyViolation as e:
        emit(ErrorMessage(kind="policy", error=str(e)))
        return

    namespace = {
        "__builtins__": safe_builtins(api),
        "__name__": "agent",
        "api": api,
        "math": math,
    }
    try:
        exec(code, namespace)
    except Exception as e:
        emit(ErrorMessage(kind="runtime", error=f"{type(e).__name__}: {e}"))
        return

    api.end_turn()
    emit(DoneMessage(storage=api.storage(), moves=api.moves))


def main(stdin: TextIO = None, stdout: TextIO = None) -> int:
    stdin = stdin or sys.stdin
    out = stdout or sys.stdout
    logging.basicConfig(level=logging.WARNING, stream=sys.stderr)

    def emit(message) -> None:
        out.write(encode_message(message) + "\n")
        out.flush()

    try:
        request = TurnRequest.model_validate(json.loads(stdin.read()))
    except (json.JSONDecodeError, ValidationError) as e:
        emit(ErrorMessage(kind="protocol", error=f"Bad turn request: {e}"))
        return 2

    apply_resource_limits(request.cpu_seconds, request.memory_bytes)
    run_turn(request, emit)
    return 0


if __name__ == "__main__":
    sys.exit(main())
