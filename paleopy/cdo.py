"""
paleopy.cdo
===========
Checked calls into the Climate Data Operators (CDO) command line.

``CdoRunner`` drives the ``cdo`` binary through the ``cdo`` Python bindings.
Every call is verified: a non-zero exit status, or an expected output file
that was not written, raises ``DependencyFailure`` carrying the operator,
exit status and stderr.  Calls block until CDO finishes; no timeout is set.

Example
-------
>>> runner = CdoRunner()
>>> runner.run("sellonlatbox", -180, 180, -30, 30,
...            input="R1.nc", output="R1_tropics.nc")
>>> runner.run("eof", 40, input="anom.nc", output=["eigval.nc", "eigvec.nc"])
"""

from __future__ import annotations

import glob
import logging
import shutil
from pathlib import Path
from typing import Optional, Union

from cdo import Cdo, CDOException

from paleopy.exceptions import DependencyFailure

logger = logging.getLogger(__name__)


def _join(paths) -> str:
    if isinstance(paths, (str, Path)):
        return str(paths)
    return " ".join(str(p) for p in paths)


class CdoRunner:
    """Thin, checked front end to ``cdo.Cdo``.

    Parameters
    ----------
    binary : str, optional
        Path to the ``cdo`` executable.  Defaults to the one on ``PATH``.
    """

    def __init__(self, binary: Optional[str] = None):
        binary = binary or "cdo"
        resolved = shutil.which(binary)
        if resolved is None:
            raise DependencyFailure(
                "cdo", message=f"CDO executable '{binary}' not found. "
                               f"Install CDO or set EOFConfig.cdo_binary."
            )
        self.binary = resolved
        self._cdo = Cdo(cdo=resolved)
        self.calls = 0

    def run(
        self,
        operator: str,
        *args,
        input: Union[str, Path, list],
        output: Union[str, Path, list, None] = None,
        prefix: bool = False,
    ):
        """Run ``cdo operator,args input output`` and check the result.

        Parameters
        ----------
        operator : CDO operator name, e.g. 'ensmean', 'eof'.
        *args    : operator parameters, joined by commas.
        input    : one path, several paths, or a CDO operator chain string.
        output   : one or more output paths.  With ``prefix=True`` the single
                   output is a file-name prefix (``eofcoeff``) and at least
                   one file starting with it must appear.
        """
        outputs = [] if output is None else (
            [output] if isinstance(output, (str, Path)) else list(output))
        logger.debug("cdo %s%s %s %s", operator,
                     "," + ",".join(map(str, args)) if args else "",
                     _join(input), _join(outputs))
        self.calls += 1
        try:
            getattr(self._cdo, operator)(
                *args, input=_join(input),
                output=_join(outputs) if outputs else None,
            )
        except CDOException as err:
            raise DependencyFailure(
                operator,
                returncode=getattr(err, "returncode", None),
                stderr=getattr(err, "stderr", str(err)),
            ) from err

        for out in outputs:
            if prefix:
                if not glob.glob(glob.escape(str(out)) + "*"):
                    raise DependencyFailure(
                        operator, returncode=0,
                        message=f"cdo {operator} wrote no file with prefix {out}",
                    )
            elif not Path(out).exists():
                raise DependencyFailure(
                    operator, returncode=0,
                    message=f"cdo {operator} exited cleanly but {out} is missing",
                )
        return outputs
