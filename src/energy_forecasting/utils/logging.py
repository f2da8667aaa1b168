# stdlib
from pathlib import Path
from datetime import datetime
from typing import Optional
from types import TracebackType
# projectlib
from energy_forecasting.utils.paths import validate_address
from energy_forecasting.utils.typing import Verbosity, Address

class Logger(object):
    """
    Lightweight callable logger with optional file persistence.

    Messages carry a verbosity level and are emitted only when the
    logger's threshold is at least that level. Emitted messages are
    printed to stdout or appended to ``log.txt`` inside ``log_dir``.
    Warnings are always emitted, whatever the threshold.
    """

    def __init__(
        self,
        verbose: Verbosity = 0,
        log_dir: Address = Path.cwd(),
        write_log: bool = False
    ) -> None:
        """
        Initialize the logger.

        Parameters
        ----------
        verbose : Verbosity, default 0
            Verbosity threshold. Messages with a verbosity level less
            than or equal to this value will be emitted.
        log_dir : Address, default Path.cwd()
            Directory in which the log file will be written if
            `write_log` is True. Created when missing.
        write_log : bool, default False
            If True, messages are appended to a log file. If False,
            messages are printed to stdout.
        """
        self.verbose = verbose
        self.write_log = write_log
        if write_log:
            log_dir = validate_address(log_dir, mkdir=True)
        self.log_path = Path(log_dir) / "log.txt"
        self.warnings = 0

    def __call__(self, msg: str, verbosity: int = 0) -> None:
        """
        Emit a log message if the verbosity threshold is met, e.g.
        ``logger("Training the model...", verbosity=1)``.
        """
        if self.verbose >= verbosity:
            self.emit(self._format(msg))

    def warning(self, msg: str) -> None:
        """Emit a warning regardless of the verbosity threshold."""
        self.warnings += 1
        self.emit(self._format(f"WARNING: {msg}"))

    def emit(self, formatted: str) -> None:
        if self.write_log:
            self.write(formatted)
        else:
            print(formatted)

    def write(self, msg: str) -> None:
        """Append a formatted message to the log file."""
        with open(self.log_path, "a", encoding="utf-8") as file:
            file.write(msg + "\n")

    def _format(self, msg: str) -> str:
        ts = datetime.now().isoformat(timespec="seconds")
        return f"[{ts}] {msg}"

    def __enter__(self) -> "Logger":
        return self

    def __exit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
        ) -> None:
        if exc is not None:
            self.warning(f"Run aborted: {type(exc).__name__}: {exc}")
