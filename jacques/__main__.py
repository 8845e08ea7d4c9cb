import sys
from pathlib import Path

from jacques.jacques_runtime import ScriptRunner, ExecutionResult
from jacques.jacques_printer import Printer


def prompt_input(prompt: str) -> str:
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return sys.stdin.readline()


def print_result(result: ExecutionResult, printer: Printer, show_value: bool = True):
    # Side effects first (from Println)
    for effect in result.side_effects:
        if effect.get('topics') == ['stdout']:
            print(effect.get('message', ''))
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        return
    if show_value and result.value is not None:
        print(printer.pformat(result.value))


def run_script_file(file_path: str):
    """Run a Jacques script file non-interactively and exit with appropriate status."""
    p = Path(file_path)
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    runner = ScriptRunner(source_dir=str(p.parent.resolve()))
    result = runner.handle_script(source)
    print_result(result, Printer(), show_value=False)
    if result.status == 'error':
        raise SystemExit(1)


def main(argv=None):
    """Run a script file when provided, otherwise start the interactive REPL."""
    argv = sys.argv[1:] if argv is None else argv
    if argv and not argv[0].startswith("-"):
        run_script_file(argv[0])
        return

    print("Jacques REPL v0.1")
    print("Type 'exit' or press Ctrl+D to quit.")

    runner = ScriptRunner(source_dir=str(Path.cwd()))
    printer = Printer()

    while True:
        raw = prompt_input(">> ")
        if raw == "":
            print("\nExiting.")
            break
        line = raw.strip()
        if not line:
            continue
        if line == "exit":
            break
        # Bindings persist between lines: the runner keeps one root environment.
        print_result(runner.handle_script(line), printer)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nExiting.")
