"""
paleopy.exceptions
==================
Error types raised by paleopy.

Nothing here is retried or recovered inside the library: every error
propagates to the calling script.
"""


class PaleopyError(Exception):
    pass


class ConfigError(PaleopyError, ValueError):
    pass


class TimeAxisError(PaleopyError, AssertionError):
    """Time axes of two sources are malformed or disagree.

    Downstream masking and averaging are positional, so a misaligned axis
    would corrupt every result silently. This is always fatal.
    """


class ZeroVarianceError(PaleopyError, ArithmeticError):
    def __init__(self, n_cells: int):
        self.n_cells = n_cells
        super().__init__(
            f"{n_cells} grid cell(s) have zero temporal standard deviation; "
            f"the standardized anomaly is undefined there."
        )


class DependencyFailure(PaleopyError):
    """An external tool (the CDO binary) failed or produced no output."""

    def __init__(self, operator: str, returncode=None, stderr: str = "",
                 message: str = None):
        self.operator = operator
        self.returncode = returncode
        self.stderr = stderr or ""
        if message is None:
            message = f"cdo {operator} failed (exit status {returncode})"
            if self.stderr.strip():
                message += f": {self.stderr.strip()}"
        super().__init__(message)
