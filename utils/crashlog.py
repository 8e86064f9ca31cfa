# utils/crashlog.py
import os, sys, faulthandler, datetime, traceback, threading
from typing import Optional

_fault_file = None
_log_dir: Optional[str] = None

def log_dir() -> str:
    d = _log_dir or os.path.join(os.getcwd(), "logs")
    os.makedirs(d, exist_ok=True)
    return d

def _new_log_path(prefix: str = "crash") -> str:
    stamp = datetime.datetime.now().strftime("%Y%m%d-%H%M%S-%f")
    return os.path.join(log_dir(), f"{prefix}-{stamp}.txt")

def _write_report(prefix: str, header: str, exc_type, exc, tb) -> str:
    path = _new_log_path(prefix)
    with open(path, "w", encoding="utf-8") as out:
        out.write(header + "\n")
        out.write("=" * 60 + "\n")
        traceback.print_exception(exc_type, exc, tb, file=out)
    return path

def setup_crashlog(directory: Optional[str] = None):
    """Route uncaught exceptions (main thread, threads, native faults) to logs/."""
    global _fault_file, _log_dir
    if directory:
        _log_dir = directory
    try:
        if _fault_file is None:
            _fault_file = open(_new_log_path("native"), "w", encoding="utf-8")
        faulthandler.enable(_fault_file, all_threads=True)
    except OSError:
        _fault_file = None

    def _hook(exc_type, exc, tb):
        try:
            _write_report("crash", "UNCAUGHT EXCEPTION", exc_type, exc, tb)
        finally:
            sys.__excepthook__(exc_type, exc, tb)
    sys.excepthook = _hook

    def _thread_hook(args):
        _hook(args.exc_type, args.exc_value, args.exc_traceback)
    threading.excepthook = _thread_hook

def log_exception(title: str, exc: BaseException) -> str:
    return _write_report("error", f"[{title}] {type(exc).__name__}: {exc}",
                         type(exc), exc, exc.__traceback__)
