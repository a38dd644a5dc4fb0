import sys
from pathlib import Path

from interpretr.interpretr_runtime import ScriptRunner
from interpretr.interpretr_printer import Printer
from interpretr.interpretr_host import Kernel
from interpretr.interpretr_file import read_document


def read_line(prompt: str) -> str:
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return sys.stdin.readline()


def run_script_file(file_path: str):
    """Run an AST document non-interactively and exit with appropriate status."""
    runner = ScriptRunner(Kernel())
    printer = Printer()
    p = Path(file_path)
    try:
        ast = read_document(str(p.resolve()))
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    except ValueError as e:
        print(f"ParseError: {e}", file=sys.stderr)
        raise SystemExit(1)
    result = runner.handle_script(ast)
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        raise SystemExit(1)
    print(printer.pformat(result.value))


def main():
    """Run an AST document when provided, otherwise start the interactive REPL."""
    if len(sys.argv) > 1:
        arg = sys.argv[1]
        if not arg.startswith("-"):
            run_script_file(arg)
            return

    print("interpretr REPL v0.1")
    print("Enter one JSON s-expression per line. Type 'exit' or press Ctrl+D to quit.")

    runner = ScriptRunner(Kernel())
    printer = Printer()

    while True:
        try:
            raw = read_line(">> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue
            if line == "exit":
                break

            result = runner.handle_script(line)

            if result.status == 'error':
                print(result.format_error(), file=sys.stderr)
                continue

            print(printer.pformat(result.value))

        except EOFError:
            print("\nExiting.")
            break


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nExiting.")
