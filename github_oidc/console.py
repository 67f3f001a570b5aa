"""Operator-facing output with emoji status markers."""
import io
import sys


def configure_windows_console():
    """Rewrap stdout/stderr as UTF-8 on Windows so emoji don't crash the console."""
    if sys.platform == 'win32':
        sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')
        sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8', errors='replace')


class Console:
    """Prints progress to stdout and problems to stderr.

    Quiet mode silences everything except warnings and errors.
    """

    def __init__(self, quiet: bool = False):
        self.quiet = quiet

    def _out(self, message: str = ""):
        if not self.quiet:
            print(message)

    def heading(self, title: str):
        self._out("=" * 70)
        self._out(title)
        self._out("=" * 70)
        self._out()

    def step(self, title: str):
        self._out()
        self._out(title)
        self._out("-" * 70)

    def info(self, message: str = ""):
        self._out(message)

    def success(self, message: str):
        self._out(f"✅ {message}")

    def warn(self, message: str):
        print(f"⚠️  {message}", file=sys.stderr)

    def error(self, message: str):
        print(f"❌ {message}", file=sys.stderr)
