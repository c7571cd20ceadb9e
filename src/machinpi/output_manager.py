# output_manager.py

import os
import re

from machinpi.fmt import strip_ansi
from machinpi.workspace import workspace_dir

_SAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._=-]+")


def resolve_output_path(path: str, workspace_root: str) -> str:
    """
    Resolve user-provided output path.

    Rules:
    - '~' expanded to user home
    - Absolute paths unchanged
    - Relative paths are relative to workspace_root
    """
    if not path:
        raise ValueError("Output path is empty")

    # Expand ~ (Linux/macOS + works on Windows too)
    path = os.path.expanduser(path)

    # Absolute path → keep
    if os.path.isabs(path):
        return os.path.normpath(path)

    # Relative path → workspace-relative
    return os.path.normpath(os.path.join(workspace_root, path))


def _next_available_path(path: str) -> str:
    """
    If `path` does not exist, return it.
    Otherwise return path with _2, _3, ... inserted before the extension.
    """
    if not os.path.exists(path):
        return path

    base, ext = os.path.splitext(path)
    i = 2
    while True:
        candidate = f"{base}_{i}{ext}"
        if not os.path.exists(candidate):
            return candidate
        i += 1


def run_filename(run_name: str, ext: str = ".txt") -> str:
    """Filesystem-safe file name for one run, e.g. 'pi_1000d.txt'."""
    stem = _SAFE_CHARS_RE.sub("_", run_name).strip("._-=") or "run"
    return stem + ext


class OutputManager:
    """
    Handles all printing/output, including to screen and/or file.

    Usage:
        # Split mode (one file per run, never overwritten):
        om = OutputManager(output_file="results/", run_name="pi_1000d")
        om.write("Hello")   # prints and buffers; file written on close()
        om.close()

        # Single file (append all runs to one file):
        om = OutputManager(output_file="results/all.txt")
        om.write("Hello")   # prints and appends
        om.close()
    """

    def __init__(self, output_file: str | None = None, quiet: bool = False, run_name: str | None = None):
        """
        Parameters:
            output_file:
                None or ""       => screen only
                "." or "./"      => per-run files in the workspace
                endswith "/"     => per-run files in specified dir
                path/to/file.txt => append all runs to this file
            quiet: if True, no output to screen (only to file)
            run_name: used for the filename in per-run mode
        """
        self.quiet = quiet
        self.output_file = output_file or ""
        self.run_name = run_name
        self._buffer: list[str] = []

        self._mode: str = "none"     # "none" | "split" | "single"
        self._split_path: str | None = None
        self._single_path: str | None = None
        self._closed = False

        workspace = str(workspace_dir())
        if self.output_file in (".", "./") or self.output_file.endswith("/"):
            if run_name is None:
                raise ValueError("A run name must be provided when outputting to a directory.")
            directory = resolve_output_path(self.output_file, workspace)
            os.makedirs(directory, exist_ok=True)
            self._mode = "split"
            self._split_path = _next_available_path(os.path.join(directory, run_filename(run_name)))

        elif self.output_file:
            path = resolve_output_path(self.output_file, workspace)

            # Ensure parent folder exists (important for workspace-relative paths like "logs/out.txt")
            parent = os.path.dirname(path)
            if parent:
                os.makedirs(parent, exist_ok=True)

            self._mode = "single"
            self._single_path = path

    @property
    def path(self) -> str | None:
        """File that receives the output, if any."""
        return self._split_path or self._single_path

    def write(self, *args, sep: str = " ", end: str = "\n") -> None:
        """Write to screen and file (if configured)."""
        text = sep.join(str(a) for a in args) + end
        self._buffer.append(text)

        if not self.quiet:
            print(text, end="")

        if self._mode == "single" and self._single_path:
            with open(self._single_path, "a", encoding="utf-8") as fh:
                fh.write(strip_ansi(text))
        # For "split" mode we defer writing until close(), so we don't truncate on each call.

    def write_screen(self, *args, sep: str = " ", end: str = "\n", flush: bool = True) -> None:
        """Write only to the screen, never to the file."""
        if self.quiet:
            return
        print(*args, sep=sep, end=end, flush=flush)

    def getvalue(self) -> str:
        """Returns everything printed (with color codes)."""
        return "".join(self._buffer)

    def close(self) -> None:
        """Flush buffered output to the per-run file (split mode) or add a separator (single mode)."""
        if self._closed:
            return
        self._closed = True

        if self._mode == "split" and self._split_path and self._buffer:
            content = strip_ansi("".join(self._buffer))
            with open(self._split_path, "w", encoding="utf-8") as fh:
                fh.write(content)
            return

        # Single mode: add separator between runs
        if self._mode == "single" and self._single_path and self._buffer:
            with open(self._single_path, "a", encoding="utf-8") as fh:
                fh.write("\n")  # one empty line between runs
